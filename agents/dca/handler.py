"""
One-shot entry point for an external scheduler: refresh token market data,
then run one execution pass.
"""
import asyncio
from agents.dca.engine import Engine, build_engine
from agents.dca.services.price_updater import refresh_token_prices
from shared.utils.logging import setup_logging
import structlog

logger = structlog.get_logger()


async def run_once(engine: Engine) -> dict:
    try:
        await refresh_token_prices(engine.store)
    except Exception as e:
        logger.error("token_refresh_failed", error=str(e))

    result = await engine.orchestrator.run()
    return {"statusCode": 200, "body": result.to_dict()}


def handler(event=None, context=None) -> dict:
    """Fatal errors propagate so the invoking scheduler marks the run failed."""
    setup_logging()
    try:
        return asyncio.run(run_once(build_engine()))
    except Exception as e:
        logger.error("dca_handler_failed", error=str(e))
        raise
