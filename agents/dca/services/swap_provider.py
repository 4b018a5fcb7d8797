"""
Swap Instruction Provider — 1inch v6 swap API.

Returns the router calldata the aggregator executor forwards. Transport
failures are retried; HTTP errors and responses without calldata are not.
"""
import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from shared.config import settings
from agents.dca.config import DEFAULT_SLIPPAGE_PCT, AGGREGATOR_FEE_PCT
from agents.dca.errors import SwapProviderError
import structlog

logger = structlog.get_logger()


class OneInchSwapProvider:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        chain_id: int | None = None,
        api_key: str | None = None,
        referrer: str | None = None,
    ):
        self._client = client
        self.base_url = (base_url or settings.ONEINCH_BASE_URL).rstrip("/")
        self.chain_id = chain_id or settings.CHAIN_ID
        self.api_key = api_key if api_key is not None else settings.ONEINCH_API_KEY
        self.referrer = referrer if referrer is not None else settings.ONEINCH_REFERRER

    def build_params(self, src: str, dst: str, amount: int, spender: str, origin: str) -> dict:
        params = {
            "src": src,
            "dst": dst,
            "amount": str(amount),
            "from": spender,
            "origin": origin,
            "slippage": str(DEFAULT_SLIPPAGE_PCT),
            "disableEstimate": "true",
        }
        if self.referrer:
            params["referrer"] = self.referrer
            params["fee"] = str(AGGREGATOR_FEE_PCT)
        return params

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get(self, url: str, params: dict) -> httpx.Response:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if self._client is not None:
            return await self._client.get(url, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=15) as client:
            return await client.get(url, params=params, headers=headers)

    async def quote(self, src: str, dst: str, amount: int, spender: str, origin: str) -> str:
        """Swap calldata moving `amount` of `src` into `dst`, executed by `spender`."""
        url = f"{self.base_url}/{self.chain_id}/swap"
        resp = await self._get(url, self.build_params(src, dst, amount, spender, origin))

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning("oneinch_swap_error", status=resp.status_code, body=resp.text[:200])
            raise SwapProviderError(f"1inch API error: {resp.status_code} {resp.reason_phrase}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise SwapProviderError("1inch API returned invalid JSON") from e

        data = (payload.get("tx") or {}).get("data") if isinstance(payload, dict) else None
        if not data:
            raise SwapProviderError("1inch API response has no tx.data")
        return data
