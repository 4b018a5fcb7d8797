"""
Plain value types passed between the execution stages.

The store maps ORM rows onto these so the engine never touches a session.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class AuthResult(str, Enum):
    AUTHORIZED = "authorized"
    INSUFFICIENT = "insufficient"
    CHECK_FAILED = "check_failed"


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    NOT_DUE = "not_due"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
    ALLOWANCE_CHECK_FAILED = "allowance_check_failed"
    RECONCILE_PENDING = "reconcile_pending"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    PASS_DEADLINE_EXCEEDED = "pass_deadline_exceeded"


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    decimals: int
    is_wrapped: bool = False
    fee_tier: Optional[int] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class Plan:
    row_id: int
    variant: str
    user_wallet: str
    recipient: str
    token_out: TokenInfo
    amount_in: int
    frequency: int
    last_executed_at: int
    active: bool = True
    plan_hash: Optional[str] = None
    plan_id: Optional[int] = None
    approval_amount: Optional[int] = None
    pending_tx_hash: Optional[str] = None
    pending_at: Optional[int] = None

    @property
    def label(self) -> str:
        """Identifier for logs: the plan hash or on-chain id when present."""
        if self.plan_hash:
            return self.plan_hash
        if self.plan_id is not None:
            return f"plan-{self.plan_id}"
        return f"row-{self.row_id}"


@dataclass(frozen=True)
class ContractCall:
    function_name: str
    args: tuple
    gas: int


@dataclass(frozen=True)
class DecodedAmounts:
    amount_in: str
    amount_out: str
    fee_amount: str
    ok: bool = True
    diagnostic: Optional[str] = None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PlanOutcome:
    plan: str
    status: OutcomeStatus
    reason: Optional[str] = None
    tx_hash: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "plan": self.plan,
            "status": self.status.value,
            "reason": self.reason,
            "txHash": self.tx_hash,
        }


@dataclass
class BatchResult:
    outcomes: list[PlanOutcome] = field(default_factory=list)
    busy: bool = False

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
            "busy": self.busy,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
