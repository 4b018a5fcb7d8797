"""
Portfolio snapshots — daily invested vs current value per user.

invested = sum(amount_in - fee) in funding units
current  = sum(amount_out / 10**decimals) * token price
"""
from datetime import datetime, timezone, date
from agents.dca.config import FUNDING_UNIT
from agents.dca.models.domain import Plan
from agents.dca.services.store import PlanStore
import structlog

logger = structlog.get_logger()


def plan_values(plan: Plan, executions: list) -> tuple[float, float]:
    """(invested, current) for one plan's executions."""
    invested = sum(
        (int(e.amount_in) - int(e.fee_amount)) / FUNDING_UNIT for e in executions
    )
    tokens_held = sum(int(e.amount_out) / 10 ** plan.token_out.decimals for e in executions)
    return invested, tokens_held * (plan.token_out.price or 0.0)


def compute_portfolio(
    plans_with_executions: list[tuple[Plan, list]],
    excluded_tokens: set[str] | None = None,
) -> dict:
    excluded = {a.lower() for a in (excluded_tokens or set())}
    invested = 0.0
    current = 0.0
    for plan, executions in plans_with_executions:
        if not executions or plan.token_out.address.lower() in excluded:
            continue
        plan_invested, plan_current = plan_values(plan, executions)
        invested += plan_invested
        current += plan_current

    percent = (current - invested) / invested * 100 if invested > 0 else 0.0
    return {
        "total_invested_value": invested,
        "current_value": current,
        "percent_change": percent,
    }


async def snapshot_portfolios(
    store: PlanStore,
    funding_token: str | None = None,
    day: date | None = None,
) -> dict:
    """Upsert today's snapshot for every user; a failing user is counted and skipped."""
    day = day or datetime.now(timezone.utc).date()
    excluded = {funding_token} if funding_token else set()
    wallets = await store.list_user_wallets()

    updated = 0
    errors = 0
    for wallet in wallets:
        try:
            plans = await store.list_user_plans_with_executions(wallet)
            fields = compute_portfolio(plans, excluded)
            await store.upsert_daily_snapshot(wallet, day, fields)
            updated += 1
            logger.info("portfolio_snapshot_saved", wallet=wallet, **fields)
        except Exception as e:
            errors += 1
            logger.error("portfolio_snapshot_failed", wallet=wallet, error=str(e))

    logger.info("portfolio_snapshot_complete", updated=updated, errors=errors, users=len(wallets))
    return {"processed_users": len(wallets), "updated_portfolios": updated, "errors": errors}
