from enum import Enum, StrEnum
from typing import Dict, Final, Literal, TypedDict

from eth_typing import ChecksumAddress
from eth_utils.address import to_checksum_address


class ENV(StrEnum):
    ALCHEMY_API_KEY = "ALCHEMY_API_KEY"
    ETH_SEPOLIA_RPC_URL = "ETH_SEPOLIA_RPC_URL"
    BASE_SEPOLIA_RPC_URL = "BASE_SEPOLIA_RPC_URL"
    OP_SEPOLIA_RPC_URL = "OP_SEPOLIA_RPC_URL"
    LOG_LEVEL = "LOG_LEVEL"
    LOG_FORMAT = "LOG_FORMAT"


class ChainName(StrEnum):
    ETH_SEPOLIA = "ETH_SEPOLIA"
    BASE_SEPOLIA = "BASE_SEPOLIA"
    OP_SEPOLIA = "OP_SEPOLIA"


class ContractType(TypedDict):
    address: ChecksumAddress
    ABI: str


def _contract(address: str, abi_path: str) -> ContractType:
    return {
        "address": to_checksum_address(address),
        "ABI": abi_path,
    }


# POLLING

DEFAULT_POLLING_INTERVAL = 4.0  # seconds

# Buffer applied to the legacy output submission interval to absorb
# non-deterministic block times.
INTERVAL_BUFFER = 1.1

# Number of most recent dispute games searched per poll.
LATEST_GAMES_LIMIT = 100


# OP STACK CONFIG

ABI_OPTIMISM_PORTAL = "chains/op_stack/ABI/OptimismPortal.json"
ABI_OPTIMISM_PORTAL_2 = "chains/op_stack/ABI/OptimismPortal2.json"
ABI_L2_OUTPUT_ORACLE = "chains/op_stack/ABI/L2OutputOracle.json"
ABI_DISPUTE_GAME_FACTORY = "chains/op_stack/ABI/DisputeGameFactory.json"
ABI_L2_TO_L1_MESSAGE_PASSER = "chains/op_stack/ABI/L2ToL1MessagePasser.json"

OPStackChainName = Literal[ChainName.OP_SEPOLIA, ChainName.BASE_SEPOLIA]


class OP_STACK_ETHEREUM(Enum):
    OPTIMISM_PORTAL = "OPTIMISM_PORTAL"
    L2_OUTPUT_ORACLE = "L2_OUTPUT_ORACLE"
    DISPUTE_GAME_FACTORY = "DISPUTE_GAME_FACTORY"


class OP_STACK_L2(Enum):
    L2_TO_L1_MESSAGE_PASSER = "L2_TO_L1_MESSAGE_PASSER"


OP_STACK_ETHEREUM_CONTRACTS: Final[
    Dict[OPStackChainName, Dict[OP_STACK_ETHEREUM, ContractType]]
] = {
    ChainName.OP_SEPOLIA: {
        OP_STACK_ETHEREUM.OPTIMISM_PORTAL: _contract(
            "0x16FC5058F25648194471939DF75CF27A2FDC48BC", ABI_OPTIMISM_PORTAL_2
        ),
        OP_STACK_ETHEREUM.L2_OUTPUT_ORACLE: _contract(
            "0x90E9c4f8a994a250F6aEfd61CAFb4F2e895D458F", ABI_L2_OUTPUT_ORACLE
        ),
        OP_STACK_ETHEREUM.DISPUTE_GAME_FACTORY: _contract(
            "0x05F9613aDB30026FFd634f38e5C4dFd30a197Fa1", ABI_DISPUTE_GAME_FACTORY
        ),
    },
    ChainName.BASE_SEPOLIA: {
        OP_STACK_ETHEREUM.OPTIMISM_PORTAL: _contract(
            "0x49f53e41452C74589E85cA1677426Ba426459e85", ABI_OPTIMISM_PORTAL_2
        ),
        OP_STACK_ETHEREUM.L2_OUTPUT_ORACLE: _contract(
            "0x84457ca9D0163FbC4bbfe4Dfbb20ba46e48DF254", ABI_L2_OUTPUT_ORACLE
        ),
        OP_STACK_ETHEREUM.DISPUTE_GAME_FACTORY: _contract(
            "0xd6E6dBf4F7EA0ac412fD8b65ED297e64BB7a06E1", ABI_DISPUTE_GAME_FACTORY
        ),
    },
}


OP_STACK_L2_CONTRACTS: Dict[OPStackChainName, Dict[OP_STACK_L2, ContractType]] = {
    ChainName.OP_SEPOLIA: {
        OP_STACK_L2.L2_TO_L1_MESSAGE_PASSER: _contract(
            "0x4200000000000000000000000000000000000016", ABI_L2_TO_L1_MESSAGE_PASSER
        ),
    },
    ChainName.BASE_SEPOLIA: {
        OP_STACK_L2.L2_TO_L1_MESSAGE_PASSER: _contract(
            "0x4200000000000000000000000000000000000016", ABI_L2_TO_L1_MESSAGE_PASSER
        )
    },
}
