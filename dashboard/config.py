from shared.config import settings

SERVICE_NAME = "dashboard"
TICK_REFRESH_INTERVAL = settings.TICK_REFRESH_INTERVAL   # Tick poll every 60s

# The freshest ticks are not fully indexed upstream yet
SAFE_TICK_LAG = 100
SECONDS_PER_TICK = 12              # ~12s per tick, used for tick -> wall clock

# Raw integer amount units per displayed QU
UNITS_PER_QU = 1000

# Whale ranking
WHALE_TOP_N = 6
WHALE_TICKS_BACK = 10

# Alerts
ALERT_TICKS_BACK = 5
LARGE_TX_THRESHOLD_QU = 1000
ALERT_LIMIT = 8

# Holder growth sampling
HOLDER_TICKS_BACK = 100
HOLDER_SAMPLE_INTERVAL = 10

# Distribution
DISTRIBUTION_TICKS_BACK = 20
DISTRIBUTION_TIERS = [
    ("Top 1-3 Wallets", 0, 3),
    ("Top 4-10 Wallets", 3, 10),
    ("Top 11-50 Wallets", 10, 50),
    ("Retail Holders", 50, None),
]

# Heatmap: ~7 days of samples, every 5th tick, 4-hour windows
HEATMAP_TICKS_BACK = 168
HEATMAP_STRIDE = 5
HEATMAP_WINDOW_HOURS = 4

# Recent transactions table
RECENT_TX_TICKS_BACK = 10
RECENT_TX_LIMIT = 10

# Trade classification by raw amount (heuristic policy, not a business rule)
TRADE_BANDS = [
    ("buy", 100_000_000_000),      # > 100 QU
    ("sell", 10_000_000_000),      # > 10 QU
]
TRADE_TICKS = 2
TRADE_PER_TICK_LIMIT = 50
