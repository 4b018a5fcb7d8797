"""
Plan variants. Each one knows how to authorize a plan, build its executor
call and decode its event from the receipt, and which plan fields change after
an execution or an allowance revert.

aggregator: 1inch calldata forwarded to executeSwap / executeNativeSwap,
    authorization read from the on-chain allowance.
ledger: executeDCAPlan with a Uniswap pool fee, authorization tracked in
    plan.approval_amount.
"""
from typing import Any
from hexbytes import HexBytes
from web3 import Web3
from shared.contracts import ExecutorContract
from agents.dca.config import (
    VARIANT_AGGREGATOR, VARIANT_LEDGER, DEFAULT_POOL_FEE, SWAP_GAS_LIMIT, PLAN_GAS_LIMIT,
)
from agents.dca.models.domain import AuthResult, ContractCall, DecodedAmounts, Plan
from agents.dca.services.authorization import AllowanceReader, check_ledger_approval, check_onchain_allowance
from agents.dca.services.decoder import SWAP_EXECUTED, DCA_PLAN_EXECUTED, decode_receipt
from agents.dca.services.swap_provider import OneInchSwapProvider


class AggregatorSwapVariant:
    name = VARIANT_AGGREGATOR
    schema = SWAP_EXECUTED

    def __init__(
        self,
        contract: ExecutorContract,
        swap_provider: OneInchSwapProvider,
        funding_token: str,
        read_allowance: AllowanceReader | None = None,
    ):
        self.contract = contract
        self.swap_provider = swap_provider
        self.funding_token = funding_token
        self.read_allowance = read_allowance

    async def authorize(self, plan: Plan) -> AuthResult:
        return await check_onchain_allowance(self.read_allowance, plan, self.contract.address)

    async def build_call(self, plan: Plan) -> ContractCall:
        swap_data = await self.swap_provider.quote(
            src=self.funding_token,
            dst=plan.token_out.address,
            amount=plan.amount_in,
            spender=self.contract.address,
            origin=plan.recipient,
        )
        function_name = "executeNativeSwap" if plan.token_out.is_wrapped else "executeSwap"
        return ContractCall(
            function_name=function_name,
            args=(
                Web3.to_checksum_address(plan.user_wallet),
                Web3.to_checksum_address(plan.token_out.address),
                Web3.to_checksum_address(plan.recipient),
                plan.amount_in,
                HexBytes(swap_data),
            ),
            gas=SWAP_GAS_LIMIT,
        )

    def decode_event(self, receipt: Any, plan: Plan) -> DecodedAmounts:
        return decode_receipt(receipt, self.schema, self.contract.address, nominal_amount_in=plan.amount_in)

    def updates_after_execution(self, plan: Plan, decoded: DecodedAmounts) -> dict:
        return {}

    def updates_after_allowance_revert(self, plan: Plan) -> dict:
        return {}


class LedgerVariant:
    name = VARIANT_LEDGER
    schema = DCA_PLAN_EXECUTED

    def __init__(self, contract: ExecutorContract):
        self.contract = contract

    async def authorize(self, plan: Plan) -> AuthResult:
        return check_ledger_approval(plan)

    async def build_call(self, plan: Plan) -> ContractCall:
        if plan.plan_id is None:
            raise ValueError(f"ledger plan {plan.label} has no on-chain plan id")
        pool_fee = plan.token_out.fee_tier or DEFAULT_POOL_FEE
        # The contract's _user argument takes the recipient wallet
        return ContractCall(
            function_name="executeDCAPlan",
            args=(Web3.to_checksum_address(plan.recipient), plan.plan_id, plan.amount_in, pool_fee),
            gas=PLAN_GAS_LIMIT,
        )

    def decode_event(self, receipt: Any, plan: Plan) -> DecodedAmounts:
        return decode_receipt(receipt, self.schema, self.contract.address, nominal_amount_in=plan.amount_in)

    def updates_after_execution(self, plan: Plan, decoded: DecodedAmounts) -> dict:
        """Spend the nominal amount from the local approval, never below zero."""
        approval = plan.approval_amount or 0
        return {"approval_amount": max(0, approval - plan.amount_in)}

    def updates_after_allowance_revert(self, plan: Plan) -> dict:
        return {"approval_amount": 0}
