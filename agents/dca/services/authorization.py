"""
Authorization Guard — decides whether a plan may spend `amount_in` this pass.

Wrapped destination tokens bypass the check. Otherwise the plan's variant
answers: the aggregator variant reads the live ERC-20 allowance granted to the
executor, the ledger variant compares against its locally tracked approval.
"""
import asyncio
from typing import Callable
from agents.dca.models.domain import AuthResult, Plan
from agents.dca.services.notifier import Notifier, notify_safely
import structlog

logger = structlog.get_logger()

# (owner, spender) -> allowance; blocking, so it runs in a worker thread
AllowanceReader = Callable[[str, str], int]


def check_ledger_approval(plan: Plan) -> AuthResult:
    approval = plan.approval_amount or 0
    return AuthResult.AUTHORIZED if plan.amount_in <= approval else AuthResult.INSUFFICIENT


async def check_onchain_allowance(read_allowance: AllowanceReader | None, plan: Plan, spender: str) -> AuthResult:
    """Compare amount_in with allowance(owner, spender); any read error is CHECK_FAILED."""
    if read_allowance is None:
        logger.error("dca_allowance_reader_missing", plan=plan.label)
        return AuthResult.CHECK_FAILED
    try:
        allowance = await asyncio.to_thread(read_allowance, plan.user_wallet, spender)
    except Exception as e:
        logger.warning("dca_allowance_check_failed", plan=plan.label, error=str(e))
        return AuthResult.CHECK_FAILED

    if plan.amount_in <= int(allowance):
        return AuthResult.AUTHORIZED
    logger.info(
        "dca_allowance_insufficient",
        plan=plan.label,
        allowance=str(allowance),
        amount_in=str(plan.amount_in),
    )
    return AuthResult.INSUFFICIENT


class AuthorizationGuard:
    def __init__(self, notifier: Notifier | None = None):
        self._notifier = notifier

    async def authorize(self, plan: Plan, variant) -> AuthResult:
        if plan.token_out.is_wrapped:
            return AuthResult.AUTHORIZED

        result = await variant.authorize(plan)
        if result == AuthResult.INSUFFICIENT:
            await notify_safely(self._notifier, plan.label, plan.user_wallet, "insufficient_allowance")
        return result
