"""
DCA Execution Agent — FastAPI application (port 8007)

Executes due Dollar-Cost-Averaging plans on Base through the DCA executor
contracts, refreshes token market data and snapshots user portfolios daily.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from shared.config import settings
from shared.utils.logging import setup_logging
from shared.utils.scheduler import start_scheduler, stop_scheduler, scheduler
from agents.dca.engine import build_engine
from agents.dca.routes.api import router
from agents.dca.services.portfolio import snapshot_portfolios
from agents.dca.services.price_updater import refresh_token_prices
from agents.dca.config import DCA_CHECK_INTERVAL, PRICE_REFRESH_INTERVAL, PORTFOLIO_SNAPSHOT_HOUR
import structlog

logger = structlog.get_logger()


async def _dca_job(app: FastAPI):
    try:
        await app.state.engine.orchestrator.run()
    except Exception as e:
        logger.error("dca_job_failed", error=str(e))


async def _price_job(app: FastAPI):
    try:
        await refresh_token_prices(app.state.engine.store)
    except Exception as e:
        logger.error("price_job_failed", error=str(e))


async def _portfolio_job(app: FastAPI):
    try:
        await snapshot_portfolios(app.state.engine.store, settings.FUNDING_TOKEN_ADDRESS)
    except Exception as e:
        logger.error("portfolio_job_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("dca_agent_starting")
    app.state.engine = build_engine()
    start_scheduler()

    scheduler.add_job(_dca_job, "interval", seconds=DCA_CHECK_INTERVAL, id="dca_execute", args=[app])
    scheduler.add_job(_price_job, "interval", seconds=PRICE_REFRESH_INTERVAL, id="dca_token_prices", args=[app])
    scheduler.add_job(
        _portfolio_job, "cron", hour=PORTFOLIO_SNAPSHOT_HOUR, timezone="UTC", id="dca_portfolio_snapshot", args=[app]
    )

    yield

    stop_scheduler()
    logger.info("dca_agent_stopped")


app = FastAPI(
    title="DCA Execution Agent",
    description="Executes scheduled Dollar-Cost-Averaging plans on-chain and records their outcomes.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("agents.dca.main:app", host="0.0.0.0", port=8007, reload=True)
