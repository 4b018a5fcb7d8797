"""
Notifier — tells a plan owner their approval needs topping up.

Delivery is a structured log line for now. Callers go through `notify_safely`,
which never lets a notifier failure reach the execution path.
"""
import structlog

logger = structlog.get_logger()


class Notifier:
    async def notify(self, plan_id: str, wallet: str, reason: str) -> None:
        logger.warning("dca_user_notification", plan=plan_id, wallet=wallet, reason=reason)


async def notify_safely(notifier: Notifier | None, plan_id: str, wallet: str, reason: str) -> None:
    if notifier is None:
        return
    try:
        await notifier.notify(plan_id, wallet, reason)
    except Exception as e:
        logger.error("dca_notify_failed", plan=plan_id, wallet=wallet, error=str(e))
