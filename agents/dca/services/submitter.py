"""
Transaction Submitter — builds, signs and broadcasts executor calls, then waits
for one confirmation.

web3 is synchronous, so each chain call runs in a worker thread. Nonce
allocation and broadcast are serialised by a process-wide lock so two calls
never sign with the same nonce.

The call is simulated with eth_call before signing so a revert reason (an
allowance shortfall in particular) surfaces before anything is spent. The hash
of the signed transaction is handed to `on_broadcast` before it is sent, so a
pass that is cut off mid-send still leaves a pending marker behind.
"""
import asyncio
import threading
from typing import Any, Awaitable, Callable
from eth_account import Account
from web3 import Web3
from web3.exceptions import TransactionNotFound
from shared.contracts import ExecutorContract
from agents.dca.config import ALLOWANCE_REVERT_MARKERS
from agents.dca.errors import DCAError, SubmissionError, TransactionReverted, AllowanceRevertError
from agents.dca.models.domain import ContractCall
import structlog

logger = structlog.get_logger()

_nonce_lock = threading.Lock()

OnBroadcast = Callable[[str], Awaitable[None]]


def is_allowance_revert(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in ALLOWANCE_REVERT_MARKERS)


def classify_error(error: Exception, tx_hash: str | None = None) -> SubmissionError:
    """Map a web3/RPC failure onto the submission error hierarchy."""
    if isinstance(error, SubmissionError):
        return error
    message = str(error) or error.__class__.__name__
    if is_allowance_revert(message):
        return AllowanceRevertError(message, tx_hash=tx_hash)
    return SubmissionError(message, tx_hash=tx_hash)


class TransactionSubmitter:
    def __init__(self, w3: Web3, private_key: str, chain_id: int, receipt_timeout: int = 120):
        self.w3 = w3
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self.account.address

    def _simulate(self, contract: ExecutorContract, call: ContractCall, block_identifier: Any = "latest") -> None:
        contract.call(call.function_name, call.args, {"from": self.account.address}, block_identifier)

    def _sign_and_send(
        self,
        contract: ExecutorContract,
        call: ContractCall,
        mark: Callable[[str], None],
        abandoned: threading.Event,
    ) -> str:
        try:
            self._simulate(contract, call)
        except Exception as e:
            raise classify_error(e) from e

        with _nonce_lock:
            tx = contract.build_transaction(call.function_name, call.args, {
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
                "gas": call.gas,
                "gasPrice": self.w3.eth.gas_price,
                "chainId": self.chain_id,
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = Web3.to_hex(signed.hash)
            if abandoned.is_set():
                raise SubmissionError("submission abandoned before broadcast")

            mark(tx_hash)
            try:
                self.w3.eth.send_raw_transaction(signed.raw_transaction)
            except Exception as e:
                raise classify_error(e, tx_hash) from e
        return tx_hash

    async def _revert_error(
        self, contract: ExecutorContract, call: ContractCall, tx_hash: str, receipt
    ) -> SubmissionError:
        """Replay a mined revert with eth_call at its block to recover the reason."""
        block = receipt.get("blockNumber") or "latest"
        try:
            await asyncio.to_thread(self._simulate, contract, call, block)
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            if is_allowance_revert(reason):
                return AllowanceRevertError(reason, tx_hash=tx_hash)
            return TransactionReverted(f"transaction {tx_hash} reverted: {reason}", tx_hash=tx_hash)
        return TransactionReverted(f"transaction {tx_hash} reverted", tx_hash=tx_hash)

    async def submit(
        self,
        contract: ExecutorContract,
        call: ContractCall,
        on_broadcast: OnBroadcast | None = None,
    ) -> tuple[str, dict]:
        """Send `call` and return (tx_hash, receipt) once it is mined successfully.

        `on_broadcast` runs with the hash of the signed transaction before it is
        sent. Once it has run the send goes ahead even if this coroutine is
        cancelled.
        """
        loop = asyncio.get_running_loop()
        abandoned = threading.Event()

        def mark(tx_hash: str) -> None:
            if on_broadcast is not None:
                asyncio.run_coroutine_threadsafe(on_broadcast(tx_hash), loop).result()

        try:
            tx_hash = await asyncio.to_thread(self._sign_and_send, contract, call, mark, abandoned)
        except asyncio.CancelledError:
            abandoned.set()
            raise
        except DCAError:
            raise
        except Exception as e:
            raise classify_error(e) from e

        logger.info("dca_tx_broadcast", function=call.function_name, tx_hash=tx_hash)

        try:
            receipt = await asyncio.to_thread(
                self.w3.eth.wait_for_transaction_receipt, tx_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            raise classify_error(e, tx_hash) from e

        if receipt["status"] == 0:
            raise await self._revert_error(contract, call, tx_hash, receipt)
        return tx_hash, receipt

    async def get_receipt(self, tx_hash: str) -> dict | None:
        """Receipt for an earlier broadcast, or None if the node has not mined it."""
        try:
            return await asyncio.to_thread(self.w3.eth.get_transaction_receipt, tx_hash)
        except TransactionNotFound:
            return None

    async def transaction_known(self, tx_hash: str) -> bool:
        """Whether the node has the transaction, mined or still in the mempool."""
        try:
            await asyncio.to_thread(self.w3.eth.get_transaction, tx_hash)
        except TransactionNotFound:
            return False
        return True
