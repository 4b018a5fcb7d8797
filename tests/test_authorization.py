import pytest
from unittest.mock import AsyncMock, MagicMock

from agents.dca.models.domain import AuthResult, TokenInfo
from agents.dca.services.authorization import AuthorizationGuard
from agents.dca.services.variants import AggregatorSwapVariant, LedgerVariant

from conftest import EXECUTOR, PLAN_EXECUTOR, USER, WETH


def _aggregator(allowance=None, error=None):
    reader = MagicMock()
    if error is not None:
        reader.side_effect = error
    else:
        reader.return_value = allowance
    variant = AggregatorSwapVariant(MagicMock(address=EXECUTOR), AsyncMock(), "0xfunding", read_allowance=reader)
    return variant, reader


def _notifier(error=None):
    notifier = MagicMock()
    notifier.notify = AsyncMock(side_effect=error)
    return notifier


LEDGER = LedgerVariant(MagicMock(address=PLAN_EXECUTOR))


class TestAggregatorAllowance:
    @pytest.mark.asyncio
    async def test_allowance_equal_to_amount_is_authorized(self, make_plan):
        variant, reader = _aggregator(allowance=1_000_000)
        result = await AuthorizationGuard().authorize(make_plan(amount_in=1_000_000), variant)

        assert result == AuthResult.AUTHORIZED
        reader.assert_called_once_with(USER, EXECUTOR)

    @pytest.mark.asyncio
    async def test_allowance_below_amount_is_insufficient_and_notifies(self, make_plan):
        notifier = _notifier()
        variant, _ = _aggregator(allowance=999_999)

        result = await AuthorizationGuard(notifier).authorize(make_plan(amount_in=1_000_000), variant)

        assert result == AuthResult.INSUFFICIENT
        notifier.notify.assert_awaited_once_with("0xplan1", USER, "insufficient_allowance")

    @pytest.mark.asyncio
    async def test_rpc_error_is_check_failed(self, make_plan):
        notifier = _notifier()
        variant, _ = _aggregator(error=ConnectionError("rpc down"))

        assert await AuthorizationGuard(notifier).authorize(make_plan(), variant) == AuthResult.CHECK_FAILED
        notifier.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_reader_is_check_failed(self, make_plan):
        variant = AggregatorSwapVariant(MagicMock(address=EXECUTOR), AsyncMock(), "0xfunding")
        assert await AuthorizationGuard().authorize(make_plan(), variant) == AuthResult.CHECK_FAILED

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_change_result(self, make_plan):
        variant, _ = _aggregator(allowance=0)
        guard = AuthorizationGuard(_notifier(error=RuntimeError("webhook down")))
        assert await guard.authorize(make_plan(), variant) == AuthResult.INSUFFICIENT


class TestWrappedBypass:
    @pytest.mark.asyncio
    async def test_wrapped_token_skips_allowance_read(self, make_plan):
        variant, reader = _aggregator(allowance=0)
        plan = make_plan(token_out=TokenInfo(address=WETH, symbol="WETH", decimals=18, is_wrapped=True))

        assert await AuthorizationGuard().authorize(plan, variant) == AuthResult.AUTHORIZED
        reader.assert_not_called()

    @pytest.mark.asyncio
    async def test_wrapped_token_bypasses_ledger_approval(self, make_plan):
        plan = make_plan(
            variant="ledger",
            approval_amount=0,
            token_out=TokenInfo(address=WETH, symbol="WETH", decimals=18, is_wrapped=True),
        )
        assert await AuthorizationGuard().authorize(plan, LEDGER) == AuthResult.AUTHORIZED


class TestLedgerApproval:
    @pytest.mark.asyncio
    async def test_amount_within_approval_is_authorized(self, make_plan):
        plan = make_plan(variant="ledger", plan_id=7, approval_amount=5_000_000, amount_in=1_000_000)
        assert await AuthorizationGuard().authorize(plan, LEDGER) == AuthResult.AUTHORIZED

    @pytest.mark.asyncio
    async def test_amount_above_approval_is_insufficient(self, make_plan):
        notifier = _notifier()
        plan = make_plan(variant="ledger", plan_id=7, approval_amount=999_999, amount_in=1_000_000)

        assert await AuthorizationGuard(notifier).authorize(plan, LEDGER) == AuthResult.INSUFFICIENT
        notifier.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_approval_is_insufficient(self, make_plan):
        plan = make_plan(variant="ledger", plan_id=7, approval_amount=None)
        assert await AuthorizationGuard().authorize(plan, LEDGER) == AuthResult.INSUFFICIENT
