"""
Tests for the endpoint accessors: validation, parsing, and the
propagate-vs-degrade policy per accessor.
"""
import pytest

from shared.errors import DecodeError, MissingIdentifierError, RateLimitedError, UpstreamError
from dashboard.services import client


class TestValidation:
    """Missing identifiers fail before any request is made."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("call", [
        lambda rpc: client.get_balance(rpc, ""),
        lambda rpc: client.get_owned_assets(rpc, "   "),
        lambda rpc: client.get_entity_info(rpc, ""),
        lambda rpc: client.get_transaction_info(rpc, ""),
        lambda rpc: client.get_transaction_status(rpc, None),
        lambda rpc: client.get_transfers_by_identity(rpc, "", 1, 2),
        lambda rpc: client.get_chain_hash(rpc, None),
    ])
    async def test_missing_identifier_never_hits_network(self, fake_rpc, call):
        rpc = fake_rpc()
        with pytest.raises(MissingIdentifierError):
            await call(rpc)
        assert rpc.calls == []

    @pytest.mark.asyncio
    async def test_error_names_the_identifier(self, fake_rpc):
        with pytest.raises(MissingIdentifierError, match="identityId"):
            await client.get_balance(fake_rpc(), "")


class TestFoundationalReads:
    """Tick info, balances and approved transactions propagate errors."""

    @pytest.mark.asyncio
    async def test_tick_info_parsed(self, fake_rpc):
        rpc = fake_rpc({"v1/tick-info": {"tickInfo": {"tick": 5000, "epoch": 181, "duration": 1, "initialTick": 4000}}})
        info = await client.get_tick_info(rpc)
        assert info.tick == 5000
        assert info.epoch == 181
        assert info.initial_tick == 4000

    @pytest.mark.asyncio
    async def test_tick_info_missing_block_is_zero_tick(self, fake_rpc):
        info = await client.get_tick_info(fake_rpc({"v1/tick-info": {}}))
        assert info.tick == 0

    @pytest.mark.asyncio
    async def test_balance_propagates(self, fake_rpc):
        rpc = fake_rpc({"v1/balances/ABC": RateLimitedError()})
        with pytest.raises(RateLimitedError):
            await client.get_balance(rpc, "ABC")

    @pytest.mark.asyncio
    async def test_balance_path(self, fake_rpc):
        rpc = fake_rpc({"v1/balances/ABC": {"balance": {"id": "ABC", "balance": "100"}}})
        data = await client.get_balance(rpc, "ABC")
        assert data["balance"]["balance"] == "100"
        assert rpc.calls == ["v1/balances/ABC"]

    @pytest.mark.asyncio
    async def test_approved_transactions_are_settled_and_exact(self, fake_rpc):
        huge = "123456789012345678901234567890"
        rpc = fake_rpc({"v1/ticks/10/approved-transactions": {"approvedTransactions": [
            {"sourceId": "A", "destId": "B", "amount": huge, "tickNumber": 10, "txId": "t1"},
        ]}})

        txs = await client.get_approved_transactions(rpc, 10)

        assert len(txs) == 1
        assert txs[0].amount == int(huge)
        assert txs[0].money_flew is True
        assert txs[0].input_hex == ""

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, fake_rpc):
        rpc = fake_rpc({"v1/ticks/10/approved-transactions": {"approvedTransactions": [
            {"sourceId": "A", "destId": "B", "amount": "-5", "txId": "t1"},
        ]}})

        with pytest.raises(DecodeError):
            await client.get_approved_transactions(rpc, 10)

    @pytest.mark.asyncio
    async def test_malformed_tick_info_is_decode_error(self, fake_rpc):
        rpc = fake_rpc({"v1/tick-info": {"tickInfo": {"tick": "abc"}}})
        with pytest.raises(DecodeError):
            await client.get_tick_info(rpc)


class TestDegradingReads:
    """Non-foundational accessors log and return empty on failure."""

    @pytest.mark.asyncio
    async def test_tick_transactions_v2_wrapped_shape(self, fake_rpc):
        rpc = fake_rpc({"v2/ticks/7/transactions": {"transactions": [
            {"transaction": {"sourceId": "A", "destId": "B", "amount": "5", "tickNumber": 7, "txId": "x"},
             "timestamp": "1700000000000", "moneyFlew": False},
        ]}})

        txs = await client.get_transactions_by_tick(rpc, 7)

        assert txs[0].source_id == "A"
        assert txs[0].money_flew is False
        assert txs[0].timestamp == "1700000000000"

    @pytest.mark.asyncio
    async def test_tick_transactions_degrade_to_empty(self, fake_rpc):
        rpc = fake_rpc({"v2/ticks/7/transactions": UpstreamError(500, "down")})
        assert await client.get_transactions_by_tick(rpc, 7) == []

    @pytest.mark.asyncio
    async def test_malformed_transactions_degrade(self, fake_rpc):
        rpc = fake_rpc({"v2/ticks/7/transactions": {"transactions": [{"sourceId": "A", "amount": 1.5}]}})
        assert await client.get_transactions_by_tick(rpc, 7) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("call, path", [
        (lambda rpc: client.get_chain_hash(rpc, 5), "v1/chain-hash/5"),
        (lambda rpc: client.get_store_hash(rpc, 5), "v1/store-hash/5"),
        (lambda rpc: client.get_quorum_tick(rpc, 5), "v1/quorum-tick/5"),
        (lambda rpc: client.get_tick_data(rpc, 5), "v1/ticks/5"),
        (lambda rpc: client.get_tick_info_detailed(rpc, 5), "v1/tick-info/5"),
        (lambda rpc: client.get_network_status(rpc), "v1/status"),
        (lambda rpc: client.get_entity_info(rpc, "ID"), "v1/entities/ID"),
        (lambda rpc: client.get_transfers_by_identity(rpc, "ID", 1, 9), "v1/transfers/ID/1/9"),
    ])
    async def test_hash_and_status_reads(self, fake_rpc, call, path):
        ok = fake_rpc({path: {"hexDigest": "ab"}})
        assert await call(ok) == {"hexDigest": "ab"}
        assert ok.calls == [path]

        failing = fake_rpc({path: UpstreamError(502, "bad gateway")})
        assert await call(failing) is None

    @pytest.mark.asyncio
    async def test_smart_contract_query_posts_body(self, fake_rpc):
        rpc = fake_rpc({"v1/querySmartContract": {"responseData": "AAAA"}})
        request_data = client.to_base64(b"\x01\x02")

        result = await client.query_smart_contract(rpc, 1, 2, 2, request_data)

        assert result == {"responseData": "AAAA"}
        assert rpc.posts == [("v1/querySmartContract", {
            "contractIndex": 1, "inputType": 2, "inputSize": 2, "requestData": "AQI=",
        })]
        assert client.from_base64("AQI=") == b"\x01\x02"

    @pytest.mark.asyncio
    async def test_decode_event_uses_events_host(self, fake_rpc):
        url = "https://events.test/v1/events/decodeEvent"
        rpc = fake_rpc({url: {"type": "transfer"}})

        assert await client.decode_event(rpc, 0, "AQID") == {"type": "transfer"}
        assert rpc.posts == [(url, {"eventType": 0, "eventData": "AQID"})]

    @pytest.mark.asyncio
    async def test_transaction_with_events(self, fake_rpc):
        url = "https://events.test/v1/events/decodeEvent"
        rpc = fake_rpc({
            "v1/transaction/TX": {"transaction": {"txId": "TX", "events": [
                {"eventType": 0, "eventData": "AQID"},
                {"eventType": 1},
            ]}},
            url: {"type": "transfer"},
        })

        result = await client.get_transaction_with_events(rpc, "TX")

        assert result["txId"] == "TX"
        assert result["decodedEvents"] == [{"eventType": 0, "eventData": "AQID", "decoded": {"type": "transfer"}}]

    @pytest.mark.asyncio
    async def test_transaction_with_events_missing(self, fake_rpc):
        rpc = fake_rpc({"v1/transaction/TX": UpstreamError(404, "")})
        assert await client.get_transaction_with_events(rpc, "TX") is None


class TestRangeHelpers:
    @pytest.mark.asyncio
    async def test_range_is_inclusive_and_skips_failures(self, fake_rpc):
        rpc = fake_rpc({
            "v1/ticks/1/approved-transactions": {"approvedTransactions": [
                {"sourceId": "A", "destId": "B", "amount": "1", "txId": "a"}]},
            "v1/ticks/2/approved-transactions": UpstreamError(500, "hiccup"),
            "v1/ticks/3/approved-transactions": {"approvedTransactions": [
                {"sourceId": "B", "destId": "C", "amount": "0", "txId": "b"}]},
        })

        txs = await client.get_transactions_by_tick_range(rpc, 1, 3)

        assert [t.tx_id for t in txs] == ["a", "b"]
        assert len(rpc.calls) == 3

    @pytest.mark.asyncio
    async def test_market_activity_drops_zero_amounts(self, fake_rpc):
        rpc = fake_rpc({
            "v1/ticks/1/approved-transactions": {"approvedTransactions": [
                {"sourceId": "A", "destId": "B", "amount": "0", "txId": "zero"},
                {"sourceId": "A", "destId": "B", "amount": "9", "txId": "nine"},
            ]},
        })

        txs = await client.get_market_activity(rpc, 1, 1)

        assert [t.tx_id for t in txs] == ["nine"]
