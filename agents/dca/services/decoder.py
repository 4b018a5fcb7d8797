"""
Event Decoder — pulls executed amounts out of a transaction receipt.

Each executor event is described by an EventSchema: which fields come from
indexed topics and which from the 32-byte data words, in declaration order.
Decoding never raises; a receipt that does not carry the expected event yields
fallback amounts with ok=False and a diagnostic.
"""
from dataclasses import dataclass
from typing import Any, Mapping
from hexbytes import HexBytes
from shared.contracts import SWAP_EXECUTED_TOPIC, DCA_PLAN_EXECUTED_TOPIC
from agents.dca.config import EXECUTOR_FEE_BPS, BPS_DENOMINATOR
from agents.dca.models.domain import DecodedAmounts
import structlog

logger = structlog.get_logger()

WORD = 32


@dataclass(frozen=True)
class Field:
    name: str
    kind: str  # "address" | "uint"


@dataclass(frozen=True)
class EventSchema:
    name: str
    topic: str
    indexed: tuple[Field, ...]
    data: tuple[Field, ...]
    fee_derived: bool = False


# SwapExecuted(address indexed user, address recipient, address toToken,
#              uint256 amountIn, uint256 indexed amountOut, uint256 feeAmount)
SWAP_EXECUTED = EventSchema(
    name="SwapExecuted",
    topic=SWAP_EXECUTED_TOPIC,
    indexed=(Field("user", "address"), Field("amountOut", "uint")),
    data=(
        Field("recipient", "address"),
        Field("toToken", "address"),
        Field("amountIn", "uint"),
    ),
    fee_derived=True,
)

# DCAPlanExecuted(... indexed ..., address tokenOut, uint256 amountIn,
#                 uint256 amountOut, uint256 feeAmount)
DCA_PLAN_EXECUTED = EventSchema(
    name="DCAPlanExecuted",
    topic=DCA_PLAN_EXECUTED_TOPIC,
    indexed=(),
    data=(
        Field("tokenOut", "address"),
        Field("amountIn", "uint"),
        Field("amountOut", "uint"),
        Field("feeAmount", "uint"),
    ),
)


def derive_fee(amount_in: int) -> int:
    """Executor fee on amountIn, truncated."""
    return amount_in * EXECUTOR_FEE_BPS // BPS_DENOMINATOR


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes(HexBytes(value))


def _to_hex(value: Any) -> str:
    return "0x" + _to_bytes(value).hex()


def _get(obj: Any, key: str, default=None):
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _decode_word(word: bytes, kind: str):
    if kind == "address":
        return "0x" + word[-20:].hex()
    return int.from_bytes(word, "big")


def find_log(receipt: Any, schema: EventSchema, contract_address: str):
    """First log emitted by `contract_address` whose topic0 matches the schema."""
    wanted_address = contract_address.lower()
    wanted_topic = schema.topic.lower()
    for log in _get(receipt, "logs") or []:
        address = _get(log, "address") or ""
        topics = _get(log, "topics") or []
        if address.lower() != wanted_address or not topics:
            continue
        if _to_hex(topics[0]).lower() == wanted_topic:
            return log
    return None


def decode_log(log: Any, schema: EventSchema) -> dict:
    """Field values for one log. Raises ValueError if topics or data are short."""
    topics = _get(log, "topics") or []
    if len(topics) < 1 + len(schema.indexed):
        raise ValueError(
            f"{schema.name}: expected {1 + len(schema.indexed)} topics, got {len(topics)}"
        )
    data = _to_bytes(_get(log, "data") or b"")
    if len(data) < WORD * len(schema.data):
        raise ValueError(
            f"{schema.name}: expected {WORD * len(schema.data)} data bytes, got {len(data)}"
        )

    fields = {}
    for i, field in enumerate(schema.indexed, start=1):
        fields[field.name] = _decode_word(_to_bytes(topics[i]).rjust(WORD, b"\x00"), field.kind)
    for i, field in enumerate(schema.data):
        fields[field.name] = _decode_word(data[i * WORD:(i + 1) * WORD], field.kind)
    return fields


def fallback(nominal_amount_in: int | None, diagnostic: str) -> DecodedAmounts:
    amount_in = str(nominal_amount_in) if nominal_amount_in is not None else "0"
    return DecodedAmounts(
        amount_in=amount_in,
        amount_out="0",
        fee_amount="0",
        ok=False,
        diagnostic=diagnostic,
    )


def decode_receipt(
    receipt: Any,
    schema: EventSchema,
    contract_address: str,
    nominal_amount_in: int | None = None,
) -> DecodedAmounts:
    """Executed amounts from the schema's event in `receipt`.

    `nominal_amount_in` is reported as amount_in when no matching event is
    present. A matching event with truncated data reports all zeros.
    """
    log = find_log(receipt, schema, contract_address)
    if log is None:
        diagnostic = f"no {schema.name} event from {contract_address}"
        logger.warning("dca_event_not_found", event_name=schema.name, contract=contract_address)
        return fallback(nominal_amount_in, diagnostic)

    try:
        fields = decode_log(log, schema)
    except ValueError as e:
        logger.warning("dca_event_decode_failed", event_name=schema.name, error=str(e))
        return fallback(None, str(e))

    amount_in = fields["amountIn"]
    amount_out = fields["amountOut"]
    fee = derive_fee(amount_in) if schema.fee_derived else fields["feeAmount"]
    return DecodedAmounts(
        amount_in=str(amount_in),
        amount_out=str(amount_out),
        fee_amount=str(fee),
        fields=fields,
    )
