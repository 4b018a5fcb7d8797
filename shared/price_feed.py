"""
Shared price feed — GeckoTerminal token market data.

Used by the token refresh job and the portfolio snapshot. Per-token failures
raise; callers decide whether to skip the token or abort.
"""
import httpx
from shared.config import settings
import structlog

logger = structlog.get_logger()


class PriceFeedError(Exception):
    pass


def _to_float(value) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_token_attributes(payload: dict) -> dict:
    """Map a GeckoTerminal /tokens/{address} payload onto our market snapshot fields."""
    attributes = (payload.get("data") or {}).get("attributes")
    if not attributes:
        raise PriceFeedError("Invalid response structure from GeckoTerminal API")

    volume = attributes.get("volume_usd") or {}
    return {
        "price": _to_float(attributes.get("price_usd")),
        "fdv": _to_float(attributes.get("fdv_usd")),
        "marketcap": _to_float(attributes.get("market_cap_usd")),
        "volume_24h": _to_float(volume.get("h24")),
        "total_supply": _to_float(attributes.get("normalized_total_supply")),
    }


async def fetch_token_market_data(
    token_address: str,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """Fetch price, FDV, market cap, 24h volume and supply for one token."""
    url = f"{settings.GECKOTERMINAL_BASE_URL}/{token_address}"
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10)
    try:
        resp = await client.get(url, headers={"accept": "application/json"})
        if resp.status_code != 200:
            raise PriceFeedError(f"GeckoTerminal API error: {resp.status_code} {resp.reason_phrase}")
        return parse_token_attributes(resp.json())
    finally:
        if owns_client:
            await client.aclose()
