import pytest
from datetime import date
from types import SimpleNamespace
from sqlalchemy import select

from agents.dca.models.db import PortfolioDailyChange
from agents.dca.models.domain import DecodedAmounts, TokenInfo
from agents.dca.services.portfolio import compute_portfolio, snapshot_portfolios
from agents.dca.services.recorder import ExecutionRecorder

from conftest import TOKEN


def _execution(amount_in, fee, amount_out):
    return SimpleNamespace(amount_in=str(amount_in), fee_amount=str(fee), amount_out=str(amount_out))


class TestComputePortfolio:
    def test_invested_net_of_fees_and_value_at_price(self, make_plan):
        plan = make_plan(token_out=TokenInfo(address=TOKEN, symbol="TKN", decimals=18, price=2.0))
        executions = [
            _execution(10_000_000, 300_000, 3 * 10**18),
            _execution(10_000_000, 300_000, 2 * 10**18),
        ]

        result = compute_portfolio([(plan, executions)])

        assert result["total_invested_value"] == pytest.approx(19.4)
        assert result["current_value"] == pytest.approx(10.0)
        assert result["percent_change"] == pytest.approx((10.0 - 19.4) / 19.4 * 100)

    def test_no_executions_is_zero_change(self, make_plan):
        result = compute_portfolio([(make_plan(), [])])
        assert result == {"total_invested_value": 0.0, "current_value": 0.0, "percent_change": 0.0}

    def test_excluded_token_is_ignored(self, make_plan):
        plan = make_plan()
        result = compute_portfolio([(plan, [_execution(1_000_000, 0, 10**18)])], {TOKEN.upper()})
        assert result["total_invested_value"] == 0.0

    def test_missing_price_values_at_zero(self, make_plan):
        plan = make_plan(token_out=TokenInfo(address=TOKEN, symbol="TKN", decimals=18, price=None))
        result = compute_portfolio([(plan, [_execution(1_000_000, 0, 10**18)])])
        assert result["current_value"] == 0.0
        assert result["percent_change"] == pytest.approx(-100.0)


class TestSnapshotPortfolios:
    @pytest.mark.asyncio
    async def test_upserts_one_row_per_user_and_day(self, store, seed, session_factory):
        row_id = await seed()
        plan = await store.get_plan(row_id)
        await ExecutionRecorder(store).commit(
            plan, "0x" + "01" * 32, DecodedAmounts("1000000", str(10**18), "30000"), 100
        )
        day = date(2025, 1, 1)

        first = await snapshot_portfolios(store, day=day)
        second = await snapshot_portfolios(store, day=day)

        assert first == second == {"processed_users": 1, "updated_portfolios": 1, "errors": 0}
        async with session_factory() as db:
            rows = (await db.execute(select(PortfolioDailyChange))).scalars().all()
        assert len(rows) == 1
        assert rows[0].total_invested_value == pytest.approx(0.97)
        assert rows[0].current_value == pytest.approx(2.0)
