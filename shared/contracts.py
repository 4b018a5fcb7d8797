import json
from functools import lru_cache
from pathlib import Path
from web3 import Web3

ABI_DIR = Path(__file__).parent / "abis"

# keccak256 of the executor event signatures
SWAP_EXECUTED_TOPIC = "0xad671c9d50262b75ba17bdf7e330ae0d7da971800b2526584a85f83d23296b15"
DCA_PLAN_EXECUTED_TOPIC = "0x5bb85ced8e36830fbb0c473b21ff268ddd67f189a58d75e3c1053f5b13a2469d"


@lru_cache(maxsize=None)
def _load_abi(name: str) -> list:
    with open(ABI_DIR / f"{name}.json") as f:
        return json.load(f)


class ERC20Contract:
    def __init__(self, w3: Web3, token_address: str):
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=_load_abi("ERC20"),
        )

    def allowance(self, owner: str, spender: str) -> int:
        return self.contract.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender),
        ).call()


class ExecutorContract:
    """The DCA executor contract. `abi_name` picks the deployed shape."""

    def __init__(self, w3: Web3, address: str, abi_name: str):
        self.address = Web3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=_load_abi(abi_name))

    def build_transaction(self, function_name: str, args: tuple, tx_params: dict) -> dict:
        fn = getattr(self.contract.functions, function_name)
        return fn(*args).build_transaction(tx_params)

    def call(self, function_name: str, args: tuple, tx_params: dict, block_identifier="latest"):
        fn = getattr(self.contract.functions, function_name)
        return fn(*args).call(tx_params, block_identifier=block_identifier)
