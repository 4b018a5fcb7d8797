"""
Execution Recorder — persists a confirmed execution and settles pending
broadcasts left over from an interrupted pass.

A commit is three store writes: advance the plan, insert the execution keyed
by tx hash, clear the pending marker. Each write is safe to repeat, so a commit
that dies halfway is finished by `reconcile` on the next pass.
"""
from enum import Enum
from agents.dca.models.domain import DecodedAmounts, Plan
from agents.dca.services.store import PlanStore
import structlog

logger = structlog.get_logger()

CLEAR_PENDING = {"pending_tx_hash": None, "pending_at": None}


class ReconcileResult(str, Enum):
    NOTHING_PENDING = "nothing_pending"
    ALREADY_RECORDED = "already_recorded"
    STILL_PENDING = "still_pending"
    REVERTED = "reverted"
    DROPPED = "dropped"
    COMMITTED = "committed"


class ExecutionRecorder:
    def __init__(self, store: PlanStore):
        self.store = store

    async def mark_pending(self, plan: Plan, tx_hash: str, now: int) -> None:
        await self.store.update_plan(plan.row_id, pending_tx_hash=tx_hash, pending_at=now)

    async def commit(
        self,
        plan: Plan,
        tx_hash: str,
        decoded: DecodedAmounts,
        executed_at: int,
        plan_updates: dict | None = None,
    ) -> bool:
        """Record one confirmed execution. Returns False if it was already recorded."""
        # A plan already at or past executed_at had this write applied before
        if executed_at > plan.last_executed_at:
            fields = dict(plan_updates or {})
            fields["last_executed_at"] = executed_at
            await self.store.update_plan(plan.row_id, **fields)

        inserted = await self.store.insert_execution({
            "tx_hash": tx_hash,
            "plan_row_id": plan.row_id,
            "token_out_address": plan.token_out.address,
            "amount_in": decoded.amount_in,
            "amount_out": decoded.amount_out,
            "fee_amount": decoded.fee_amount,
            "decode_ok": decoded.ok,
            "executed_at": executed_at,
        })

        await self.store.update_plan(plan.row_id, **CLEAR_PENDING)

        if inserted:
            logger.info(
                "dca_execution_recorded",
                plan=plan.label,
                tx_hash=tx_hash,
                amount_in=decoded.amount_in,
                amount_out=decoded.amount_out,
                fee_amount=decoded.fee_amount,
                decode_ok=decoded.ok,
            )
        else:
            logger.info("dca_execution_already_recorded", plan=plan.label, tx_hash=tx_hash)
        return inserted

    async def reconcile(self, plan: Plan, submitter, variant) -> ReconcileResult:
        """Settle a plan's pending broadcast before it is considered again."""
        tx_hash = plan.pending_tx_hash
        if not tx_hash:
            return ReconcileResult.NOTHING_PENDING

        if await self.store.execution_exists(tx_hash):
            await self.store.update_plan(plan.row_id, **CLEAR_PENDING)
            logger.info("dca_reconcile_already_recorded", plan=plan.label, tx_hash=tx_hash)
            return ReconcileResult.ALREADY_RECORDED

        receipt = await submitter.get_receipt(tx_hash)
        if receipt is None:
            # Marked but never accepted by the node: the send failed or was never reached
            if not await submitter.transaction_known(tx_hash):
                await self.store.update_plan(plan.row_id, **CLEAR_PENDING)
                logger.warning("dca_reconcile_dropped", plan=plan.label, tx_hash=tx_hash)
                return ReconcileResult.DROPPED
            logger.info("dca_reconcile_pending", plan=plan.label, tx_hash=tx_hash)
            return ReconcileResult.STILL_PENDING

        if receipt["status"] == 0:
            await self.store.update_plan(plan.row_id, **CLEAR_PENDING)
            logger.warning("dca_reconcile_reverted", plan=plan.label, tx_hash=tx_hash)
            return ReconcileResult.REVERTED

        decoded = variant.decode_event(receipt, plan)
        executed_at = plan.pending_at or plan.last_executed_at
        await self.commit(
            plan,
            tx_hash,
            decoded,
            executed_at,
            plan_updates=variant.updates_after_execution(plan, decoded),
        )
        logger.info("dca_reconcile_committed", plan=plan.label, tx_hash=tx_hash)
        return ReconcileResult.COMMITTED
