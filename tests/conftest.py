"""
Shared fixtures: an in-memory sqlite store, plan/token builders and receipt
helpers for the executor events.
"""
import pytest
from unittest.mock import MagicMock
from hexbytes import HexBytes
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from shared.contracts import SWAP_EXECUTED_TOPIC, DCA_PLAN_EXECUTED_TOPIC
from shared.models.base import Base
from agents.dca.models.db import User, Token, DCAPlan
from agents.dca.models.domain import Plan, TokenInfo
from agents.dca.services.store import PlanStore

EXECUTOR = "0x1111111111111111111111111111111111111111"
PLAN_EXECUTOR = "0x2222222222222222222222222222222222222222"
USER = "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
RECIPIENT = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
TOKEN = "0xcccccccccccccccccccccccccccccccccccccccc"
WETH = "0x4200000000000000000000000000000000000006"


def word(value) -> bytes:
    if isinstance(value, str):
        return bytes.fromhex(value[2:]).rjust(32, b"\x00")
    return value.to_bytes(32, "big")


def swap_executed_log(amount_in, amount_out, fee=0, address=EXECUTOR, user=USER, recipient=RECIPIENT, token=TOKEN):
    return {
        "address": address,
        "topics": [HexBytes(SWAP_EXECUTED_TOPIC), HexBytes(word(user)), HexBytes(word(amount_out))],
        "data": HexBytes(word(recipient) + word(token) + word(amount_in) + word(fee)),
    }


def plan_executed_log(amount_in, amount_out, fee, address=PLAN_EXECUTOR, token=TOKEN):
    return {
        "address": address,
        "topics": [HexBytes(DCA_PLAN_EXECUTED_TOPIC), HexBytes(word(USER))],
        "data": HexBytes(word(token) + word(amount_in) + word(amount_out) + word(fee)),
    }


def receipt(*logs, status=1):
    return {"status": status, "logs": list(logs)}


def executor_contract(address=EXECUTOR):
    """ExecutorContract stand-in whose build_transaction returns a signable dict."""
    contract = MagicMock(address=address)

    def build(function_name, args, tx_params):
        return {
            "to": address,
            "data": "0x",
            "value": 0,
            "gas": tx_params["gas"],
            "gasPrice": tx_params["gasPrice"],
            "nonce": tx_params["nonce"],
            "chainId": tx_params["chainId"],
        }

    contract.build_transaction.side_effect = build
    contract.call.return_value = None
    return contract


@pytest.fixture
def make_plan():
    def _make(**overrides) -> Plan:
        token = overrides.pop("token_out", None) or TokenInfo(
            address=TOKEN, symbol="TKN", decimals=18, price=2.0
        )
        fields = dict(
            row_id=1,
            variant="aggregator",
            user_wallet=USER,
            recipient=RECIPIENT,
            token_out=token,
            amount_in=1_000_000,
            frequency=3600,
            last_executed_at=0,
            plan_hash="0xplan1",
        )
        fields.update(overrides)
        return Plan(**fields)

    return _make


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return PlanStore(session_factory)


@pytest.fixture
def seed(session_factory):
    """Insert a user, token and plan; returns the plan row id."""

    async def _seed(token_address=TOKEN, symbol="TKN", is_wrapped=False, fee_tier=None, price=2.0,
                    wallet=USER, **plan_fields) -> int:
        async with session_factory() as db:
            if await db.get(User, wallet) is None:
                db.add(User(wallet=wallet, fid=1))
            if await db.get(Token, token_address) is None:
                db.add(Token(
                    address=token_address, symbol=symbol, decimals=18,
                    is_wrapped=is_wrapped, fee_tier=fee_tier, price=price,
                ))
            fields = dict(
                variant="aggregator",
                user_wallet=wallet,
                recipient=RECIPIENT,
                token_out_address=token_address,
                amount_in=1_000_000,
                frequency=3600,
                last_executed_at=0,
                active=True,
            )
            fields.update(plan_fields)
            plan = DCAPlan(**fields)
            db.add(plan)
            await db.commit()
            return plan.id

    return _seed
