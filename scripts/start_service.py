"""
Service starter — reads the PORT env var and starts the dashboard API.
Used by Docker/Railway deployments.
"""
import os
import uvicorn

DEFAULT_PORT = 8010


def main():
    port = int(os.environ.get("PORT") or DEFAULT_PORT)

    print(f"Starting dashboard on port {port}...")
    uvicorn.run(
        "dashboard.main:app",
        host="0.0.0.0",
        port=port,
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
