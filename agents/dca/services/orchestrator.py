"""
Batch Orchestrator — one execution pass over every active plan.

The pass folds plans into PlanOutcome values, strictly one plan at a time in
store order. Anything a single plan raises is caught at the plan boundary and
becomes a failed or skipped outcome; only failing to list the plans ends the
pass early.
"""
import asyncio
import dataclasses
import time
from typing import Callable
from agents.dca.errors import (
    DCAError, StoreError, SwapProviderError, SubmissionError, TransactionReverted, AllowanceRevertError,
)
from agents.dca.models.domain import AuthResult, BatchResult, OutcomeStatus, Plan, PlanOutcome, SkipReason
from agents.dca.services.authorization import AuthorizationGuard
from agents.dca.services.notifier import Notifier, notify_safely
from agents.dca.services.recorder import ExecutionRecorder, ReconcileResult, CLEAR_PENDING
from agents.dca.services.selector import is_due
from agents.dca.services.store import PlanStore
from agents.dca.services.submitter import TransactionSubmitter
import structlog

logger = structlog.get_logger()


def _skipped(plan: Plan, reason: SkipReason) -> PlanOutcome:
    return PlanOutcome(plan=plan.label, status=OutcomeStatus.SKIPPED, reason=reason.value)


def _failed(plan: Plan, reason: str, tx_hash: str | None = None) -> PlanOutcome:
    return PlanOutcome(plan=plan.label, status=OutcomeStatus.FAILED, reason=reason, tx_hash=tx_hash)


def failure_reason(error: Exception) -> str:
    if isinstance(error, AllowanceRevertError):
        return "allowance_revert"
    if isinstance(error, TransactionReverted):
        return "transaction_reverted"
    if isinstance(error, SubmissionError):
        return "submission_failed"
    if isinstance(error, SwapProviderError):
        return "swap_provider_error"
    if isinstance(error, StoreError):
        return "store_error"
    return "unexpected_error"


class BatchOrchestrator:
    def __init__(
        self,
        store: PlanStore,
        guard: AuthorizationGuard,
        submitter: TransactionSubmitter | None,
        variants: dict,
        recorder: ExecutionRecorder | None = None,
        notifier: Notifier | None = None,
        plan_timeout: float = 180,
        pass_timeout: float = 840,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.guard = guard
        self.submitter = submitter
        self.variants = variants
        self.recorder = recorder or ExecutionRecorder(store)
        self.notifier = notifier
        self.plan_timeout = plan_timeout
        self.pass_timeout = pass_timeout
        self._clock = clock
        self._lock = asyncio.Lock()

    async def run(self, now: int | None = None) -> BatchResult:
        """Run one pass. Raises StoreError only if the active plans cannot be listed."""
        if self._lock.locked():
            logger.warning("dca_pass_already_running")
            return BatchResult(busy=True)

        async with self._lock:
            now = now if now is not None else int(time.time())
            plans = await self.store.list_active_plans()
            logger.info("dca_pass_started", plans=len(plans), now=now)

            started = self._clock()
            result = BatchResult()
            for plan in plans:
                if self._clock() - started >= self.pass_timeout:
                    result.outcomes.append(_skipped(plan, SkipReason.PASS_DEADLINE_EXCEEDED))
                    continue
                result.outcomes.append(await self._run_plan(plan, now))

            logger.info(
                "dca_pass_finished",
                succeeded=result.succeeded,
                skipped=result.skipped,
                failed=result.failed,
                total=result.total,
            )
            return result

    async def _run_plan(self, plan: Plan, now: int) -> PlanOutcome:
        try:
            return await asyncio.wait_for(self.process_plan(plan, now), timeout=self.plan_timeout)
        except asyncio.TimeoutError:
            # A broadcast that beat the deadline keeps its pending marker for the next pass
            logger.warning("dca_plan_deadline_exceeded", plan=plan.label, timeout=self.plan_timeout)
            return _skipped(plan, SkipReason.DEADLINE_EXCEEDED)
        except DCAError as e:
            tx_hash = getattr(e, "tx_hash", None)
            logger.error("dca_plan_failed", plan=plan.label, error=str(e), tx_hash=tx_hash)
            return _failed(plan, failure_reason(e), tx_hash)
        except Exception as e:
            logger.error("dca_plan_failed", plan=plan.label, error=str(e), error_type=type(e).__name__)
            return _failed(plan, failure_reason(e))

    async def process_plan(self, plan: Plan, now: int) -> PlanOutcome:
        variant = self.variants.get(plan.variant)
        if variant is None:
            logger.error("dca_variant_unconfigured", plan=plan.label, variant=plan.variant)
            return _failed(plan, "variant_unconfigured")

        if plan.pending_tx_hash:
            plan, outcome = await self._reconcile(plan, variant)
            if outcome is not None:
                return outcome

        if not is_due(plan, now):
            return _skipped(plan, SkipReason.NOT_DUE)

        auth = await self.guard.authorize(plan, variant)
        if auth == AuthResult.INSUFFICIENT:
            return _skipped(plan, SkipReason.INSUFFICIENT_ALLOWANCE)
        if auth == AuthResult.CHECK_FAILED:
            return _skipped(plan, SkipReason.ALLOWANCE_CHECK_FAILED)

        if self.submitter is None:
            logger.error("dca_signer_missing", plan=plan.label)
            return _failed(plan, "signer_unconfigured")

        call = await variant.build_call(plan)

        async def on_broadcast(tx_hash: str) -> None:
            await self.recorder.mark_pending(plan, tx_hash, now)

        try:
            tx_hash, receipt = await self.submitter.submit(variant.contract, call, on_broadcast)
        except (TransactionReverted, AllowanceRevertError) as e:
            if e.tx_hash:
                await self.store.update_plan(plan.row_id, **CLEAR_PENDING)
            if isinstance(e, AllowanceRevertError):
                await self._remediate_allowance(plan, variant)
            raise

        decoded = variant.decode_event(receipt, plan)
        await self.recorder.commit(
            plan, tx_hash, decoded, now, plan_updates=variant.updates_after_execution(plan, decoded)
        )
        logger.info("dca_plan_executed", plan=plan.label, tx_hash=tx_hash, decode_ok=decoded.ok)
        return PlanOutcome(plan=plan.label, status=OutcomeStatus.SUCCEEDED, tx_hash=tx_hash)

    async def _reconcile(self, plan: Plan, variant) -> tuple[Plan, PlanOutcome | None]:
        if self.submitter is None:
            return plan, _skipped(plan, SkipReason.RECONCILE_PENDING)

        result = await self.recorder.reconcile(plan, self.submitter, variant)
        if result == ReconcileResult.STILL_PENDING:
            return plan, _skipped(plan, SkipReason.RECONCILE_PENDING)
        if result in (ReconcileResult.REVERTED, ReconcileResult.DROPPED):
            return dataclasses.replace(plan, pending_tx_hash=None, pending_at=None), None

        # Committed or already recorded: continue from the stored state
        refreshed = await self.store.get_plan(plan.row_id)
        if refreshed is None or not refreshed.active:
            return plan, _skipped(plan, SkipReason.NOT_DUE)
        return refreshed, None

    async def _remediate_allowance(self, plan: Plan, variant) -> None:
        updates = variant.updates_after_allowance_revert(plan)
        if updates:
            await self.store.update_plan(plan.row_id, **updates)
        logger.warning("dca_allowance_revert", plan=plan.label, wallet=plan.user_wallet, updates=updates)
        await notify_safely(self.notifier, plan.label, plan.user_wallet, "allowance_revert")
