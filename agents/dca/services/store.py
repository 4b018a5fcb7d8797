"""
Plan Store — SQLAlchemy adapter over plans, tokens, executions and portfolio snapshots.

Every public method runs in its own session and commits before returning, so
each call is one transaction. Database errors surface as StoreError.
"""
from datetime import date
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from agents.dca.errors import StoreError
from agents.dca.models.db import DCAPlan, DCAExecution, Token, User, PortfolioDailyChange
from agents.dca.models.domain import Plan, TokenInfo



def _int_or_none(value) -> int | None:
    return int(value) if value is not None else None


def to_token_info(row: Token) -> TokenInfo:
    return TokenInfo(
        address=row.address,
        symbol=row.symbol,
        decimals=int(row.decimals),
        is_wrapped=bool(row.is_wrapped),
        fee_tier=_int_or_none(row.fee_tier),
        price=row.price,
    )


def to_plan(row: DCAPlan) -> Plan:
    return Plan(
        row_id=row.id,
        variant=row.variant,
        user_wallet=row.user_wallet,
        recipient=row.recipient,
        token_out=to_token_info(row.token_out),
        amount_in=int(row.amount_in),
        frequency=int(row.frequency),
        last_executed_at=int(row.last_executed_at or 0),
        active=bool(row.active),
        plan_hash=row.plan_hash,
        plan_id=_int_or_none(row.plan_id),
        approval_amount=_int_or_none(row.approval_amount),
        pending_tx_hash=row.pending_tx_hash,
        pending_at=_int_or_none(row.pending_at),
    )


class PlanStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active_plans(self) -> list[Plan]:
        """Active plans joined with their token, in insertion order."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(DCAPlan)
                    .where(DCAPlan.active == True)  # noqa: E712
                    .options(selectinload(DCAPlan.token_out))
                    .order_by(DCAPlan.id)
                )
                return [to_plan(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"listing active plans failed: {e}") from e

    async def get_plan(self, row_id: int) -> Plan | None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(DCAPlan)
                    .where(DCAPlan.id == row_id)
                    .options(selectinload(DCAPlan.token_out))
                )
                row = result.scalar_one_or_none()
                return to_plan(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"loading plan {row_id} failed: {e}") from e

    async def update_plan(self, row_id: int, **fields) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(update(DCAPlan).where(DCAPlan.id == row_id).values(**fields))
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"updating plan {row_id} failed: {e}") from e

    async def execution_exists(self, tx_hash: str) -> bool:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(func.count()).select_from(DCAExecution).where(DCAExecution.tx_hash == tx_hash)
                )
                return (result.scalar() or 0) > 0
        except SQLAlchemyError as e:
            raise StoreError(f"execution lookup for {tx_hash} failed: {e}") from e

    async def insert_execution(self, record: dict) -> bool:
        """Insert an execution row. Returns False if the tx hash is already recorded."""
        if await self.execution_exists(record["tx_hash"]):
            return False
        try:
            async with self._session_factory() as db:
                db.add(DCAExecution(**record))
                await db.commit()
                return True
        except IntegrityError as e:
            # Lost a race with another writer for the same hash
            if await self.execution_exists(record["tx_hash"]):
                return False
            raise StoreError(f"inserting execution {record['tx_hash']} failed: {e}") from e
        except SQLAlchemyError as e:
            raise StoreError(f"inserting execution {record['tx_hash']} failed: {e}") from e

    async def list_executions(self, plan_row_id: int | None = None, limit: int = 50) -> list[DCAExecution]:
        async with self._session_factory() as db:
            q = select(DCAExecution)
            if plan_row_id:
                q = q.where(DCAExecution.plan_row_id == plan_row_id)
            q = q.order_by(DCAExecution.executed_at.desc(), DCAExecution.id.desc()).limit(limit)
            result = await db.execute(q)
            return list(result.scalars().all())

    async def count_plans_and_executions(self) -> tuple[int, int]:
        async with self._session_factory() as db:
            plans = await db.execute(
                select(func.count()).select_from(DCAPlan).where(DCAPlan.active == True)  # noqa: E712
            )
            executions = await db.execute(select(func.count()).select_from(DCAExecution))
            return plans.scalar() or 0, executions.scalar() or 0

    # Tokens

    async def list_tokens(self) -> list[TokenInfo]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Token).order_by(Token.symbol))
                return [to_token_info(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"listing tokens failed: {e}") from e

    async def update_token_market(self, address: str, fields: dict) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(update(Token).where(Token.address == address).values(**fields))
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"updating token {address} failed: {e}") from e

    # Portfolio

    async def list_user_wallets(self) -> list[str]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(User.wallet).order_by(User.wallet))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"listing users failed: {e}") from e

    async def list_user_plans_with_executions(self, wallet: str) -> list[tuple[Plan, list[DCAExecution]]]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(DCAPlan)
                    .where(DCAPlan.user_wallet == wallet, DCAPlan.active == True)  # noqa: E712
                    .options(selectinload(DCAPlan.token_out), selectinload(DCAPlan.executions))
                    .order_by(DCAPlan.id)
                )
                return [(to_plan(row), list(row.executions)) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"loading plans for {wallet} failed: {e}") from e

    async def upsert_daily_snapshot(self, wallet: str, day: date, fields: dict) -> None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(PortfolioDailyChange).where(
                        PortfolioDailyChange.user_wallet == wallet,
                        PortfolioDailyChange.date == day,
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    db.add(PortfolioDailyChange(user_wallet=wallet, date=day, **fields))
                else:
                    for key, value in fields.items():
                        setattr(row, key, value)
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"upserting snapshot for {wallet} failed: {e}") from e
