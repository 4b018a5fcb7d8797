"""
Token market-data refresh — copies GeckoTerminal snapshots onto the token rows.
"""
import asyncio
import httpx
from shared.price_feed import fetch_token_market_data
from agents.dca.services.store import PlanStore
import structlog

logger = structlog.get_logger()

# Spacing between GeckoTerminal requests (public API rate limit)
REQUEST_SPACING_SECONDS = 0.1


async def refresh_token_prices(store: PlanStore, client: httpx.AsyncClient | None = None) -> dict:
    """Refresh every token. One token failing does not stop the rest."""
    tokens = await store.list_tokens()
    updated = 0
    errors = 0

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10)
    try:
        for token in tokens:
            try:
                fields = await fetch_token_market_data(token.address, client=client)
                await store.update_token_market(token.address, fields)
                updated += 1
                logger.info("token_market_updated", symbol=token.symbol, price=fields.get("price"))
            except Exception as e:
                errors += 1
                logger.warning("token_market_update_failed", symbol=token.symbol, address=token.address, error=str(e))
            await asyncio.sleep(REQUEST_SPACING_SECONDS)
    finally:
        if owns_client:
            await client.aclose()

    logger.info("token_refresh_complete", updated=updated, errors=errors, total=len(tokens))
    return {"updated": updated, "errors": errors, "total": len(tokens)}
