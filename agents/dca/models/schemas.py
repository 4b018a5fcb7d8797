from pydantic import BaseModel, field_validator
from typing import Optional


class TokenResponse(BaseModel):
    address: str
    symbol: str
    decimals: int
    is_wrapped: bool
    price: Optional[float] = None

    model_config = {"from_attributes": True}


class PlanResponse(BaseModel):
    id: int
    plan_hash: Optional[str]
    plan_id: Optional[int]
    variant: str
    user_wallet: str
    recipient: str
    token_out_address: str
    amount_in: str
    frequency: int
    last_executed_at: int
    active: bool
    approval_amount: Optional[str]
    pending_tx_hash: Optional[str]

    model_config = {"from_attributes": True}

    # uint256 columns come back as Decimal
    @field_validator("amount_in", "approval_amount", mode="before")
    @classmethod
    def _uint_to_str(cls, v):
        return None if v is None else str(int(v))


class ExecutionResponse(BaseModel):
    id: int
    tx_hash: str
    plan_row_id: int
    token_out_address: str
    amount_in: str
    amount_out: str
    fee_amount: str
    decode_ok: bool
    executed_at: int

    model_config = {"from_attributes": True}


class PlanOutcomeResponse(BaseModel):
    plan: str
    status: str
    reason: Optional[str] = None
    txHash: Optional[str] = None


class RunResponse(BaseModel):
    succeeded: int
    skipped: int
    failed: int
    total: int
    busy: bool = False
    outcomes: list[PlanOutcomeResponse] = []


class PortfolioResponse(BaseModel):
    wallet: str
    date: str
    total_invested_value: float
    current_value: float
    percent_change: float


class HealthResponse(BaseModel):
    status: str = "ok"
    agent: str = "dca"
    active_plans: int = 0
    total_executions: int = 0
