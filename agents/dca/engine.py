"""
Builds the execution engine from settings. Shared by the scheduled app, the
one-shot handler and the service scripts.
"""
from dataclasses import dataclass
from shared.config import settings
from shared.contracts import ERC20Contract, ExecutorContract
from shared.database import async_session
from shared.web3_client import get_web3
from agents.dca.config import VARIANT_AGGREGATOR, VARIANT_LEDGER
from agents.dca.services.authorization import AuthorizationGuard
from agents.dca.services.notifier import Notifier
from agents.dca.services.orchestrator import BatchOrchestrator
from agents.dca.services.recorder import ExecutionRecorder
from agents.dca.services.store import PlanStore
from agents.dca.services.submitter import TransactionSubmitter
from agents.dca.services.swap_provider import OneInchSwapProvider
from agents.dca.services.variants import AggregatorSwapVariant, LedgerVariant
import structlog

logger = structlog.get_logger()


@dataclass
class Engine:
    store: PlanStore
    orchestrator: BatchOrchestrator


def build_variants(w3, swap_provider: OneInchSwapProvider) -> dict:
    variants = {}
    if settings.DCA_EXECUTOR_ADDRESS:
        contract = ExecutorContract(w3, settings.DCA_EXECUTOR_ADDRESS, "DCAExecutor")
        funding_token = ERC20Contract(w3, settings.FUNDING_TOKEN_ADDRESS)
        variants[VARIANT_AGGREGATOR] = AggregatorSwapVariant(
            contract, swap_provider, settings.FUNDING_TOKEN_ADDRESS, read_allowance=funding_token.allowance
        )
    if settings.DCA_PLAN_EXECUTOR_ADDRESS:
        contract = ExecutorContract(w3, settings.DCA_PLAN_EXECUTOR_ADDRESS, "DCAPlanExecutor")
        variants[VARIANT_LEDGER] = LedgerVariant(contract)
    return variants


def build_engine() -> Engine:
    if async_session is None:
        raise RuntimeError("Database not configured. Set DATABASE_URL in .env")

    w3 = get_web3()
    store = PlanStore(async_session)
    notifier = Notifier()
    variants = build_variants(w3, OneInchSwapProvider())
    guard = AuthorizationGuard(notifier)

    submitter = None
    if settings.has_signer:
        submitter = TransactionSubmitter(
            w3,
            settings.EXECUTOR_PRIVATE_KEY,
            settings.CHAIN_ID,
            receipt_timeout=settings.DCA_RECEIPT_TIMEOUT_SECONDS,
        )
    else:
        logger.warning("dca_signer_not_configured")

    orchestrator = BatchOrchestrator(
        store=store,
        guard=guard,
        submitter=submitter,
        variants=variants,
        recorder=ExecutionRecorder(store),
        notifier=notifier,
        plan_timeout=settings.DCA_PLAN_TIMEOUT_SECONDS,
        pass_timeout=settings.DCA_PASS_TIMEOUT_SECONDS,
    )
    logger.info("dca_engine_ready", variants=sorted(variants), signer=submitter.address if submitter else None)
    return Engine(store=store, orchestrator=orchestrator)
