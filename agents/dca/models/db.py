from sqlalchemy import (
    Column, Integer, BigInteger, String, Float, Numeric,
    Boolean, Date, Index, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from shared.models.base import Base, TimestampMixin

# uint256 fits in 78 decimal digits
UINT256 = Numeric(78, 0)


class User(Base, TimestampMixin):
    __tablename__ = "users"

    wallet = Column(String(66), primary_key=True)
    fid = Column(BigInteger)  # Farcaster id


class Token(Base, TimestampMixin):
    __tablename__ = "tokens"

    address = Column(String(66), primary_key=True)
    symbol = Column(String(20), nullable=False)
    decimals = Column(Integer, nullable=False, default=18)
    is_wrapped = Column(Boolean, default=False)
    fee_tier = Column(Integer)

    # Market snapshot, refreshed by the price job
    price = Column(Float)
    fdv = Column(Float)
    marketcap = Column(Float)
    volume_24h = Column(Float)
    total_supply = Column(Float)


class DCAPlan(Base, TimestampMixin):
    __tablename__ = "dca_plans"

    id = Column(Integer, primary_key=True)
    plan_hash = Column(String(66), unique=True)  # aggregator executor
    plan_id = Column(BigInteger)                 # on-chain id, ledger executor
    variant = Column(String(20), nullable=False, default="aggregator")

    user_wallet = Column(String(66), ForeignKey("users.wallet"), nullable=False)
    recipient = Column(String(66), nullable=False)
    token_out_address = Column(String(66), ForeignKey("tokens.address"), nullable=False)

    amount_in = Column(UINT256, nullable=False)
    frequency = Column(BigInteger, nullable=False)   # seconds
    last_executed_at = Column(BigInteger, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    # Ledger variant: remaining approved spend
    approval_amount = Column(UINT256)

    # Broadcast but not yet committed
    pending_tx_hash = Column(String(66))
    pending_at = Column(BigInteger)

    token_out = relationship("Token", lazy="raise")
    executions = relationship("DCAExecution", back_populates="plan", lazy="raise")

    __table_args__ = (
        Index("idx_dca_plans_active", "active"),
        Index("idx_dca_plans_wallet", "user_wallet"),
    )


class DCAExecution(Base):
    __tablename__ = "dca_executions"

    id = Column(Integer, primary_key=True)
    tx_hash = Column(String(66), nullable=False, unique=True)
    plan_row_id = Column(Integer, ForeignKey("dca_plans.id"), nullable=False)
    token_out_address = Column(String(66), nullable=False)

    amount_in = Column(String(78), nullable=False)
    amount_out = Column(String(78), nullable=False)
    fee_amount = Column(String(78), nullable=False)
    decode_ok = Column(Boolean, default=True)

    executed_at = Column(BigInteger, nullable=False)

    plan = relationship("DCAPlan", back_populates="executions", lazy="raise")

    __table_args__ = (
        Index("idx_dca_executions_plan", "plan_row_id"),
        Index("idx_dca_executions_executed", "executed_at"),
    )


class PortfolioDailyChange(Base, TimestampMixin):
    __tablename__ = "portfolio_daily_changes"

    id = Column(Integer, primary_key=True)
    user_wallet = Column(String(66), nullable=False)
    date = Column(Date, nullable=False)
    total_invested_value = Column(Float, default=0.0)
    current_value = Column(Float, default=0.0)
    percent_change = Column(Float, default=0.0)

    __table_args__ = (
        UniqueConstraint("user_wallet", "date", name="uq_portfolio_wallet_date"),
    )
