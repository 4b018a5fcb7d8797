"""
Service starter — reads the SERVICE env var and starts the DCA agent in one of
its modes. Used by Docker/Railway and cron-style schedulers.

    api        FastAPI app with the in-process scheduler (default)
    run-once   token refresh plus one execution pass, then exit
    portfolio  today's portfolio snapshot for every user, then exit
"""
import asyncio
import json
import os
import sys
import uvicorn

SERVICE = os.environ.get("SERVICE", "api")
PORT = int(os.environ.get("PORT", 8007))

SERVICES = ("api", "run-once", "portfolio")


def _run_portfolio() -> dict:
    from shared.config import settings
    from shared.utils.logging import setup_logging
    from agents.dca.engine import build_engine
    from agents.dca.services.portfolio import snapshot_portfolios

    setup_logging()
    engine = build_engine()
    return asyncio.run(snapshot_portfolios(engine.store, settings.FUNDING_TOKEN_ADDRESS))


def main():
    if SERVICE not in SERVICES:
        print(f"ERROR: Unknown service '{SERVICE}'. Options: {', '.join(SERVICES)}")
        sys.exit(1)

    if SERVICE == "run-once":
        from agents.dca.handler import handler
        print(json.dumps(handler()))
        return

    if SERVICE == "portfolio":
        print(json.dumps(_run_portfolio()))
        return

    print(f"Starting dca agent on port {PORT}...")
    uvicorn.run(
        "agents.dca.main:app",
        host="0.0.0.0",
        port=PORT,
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
