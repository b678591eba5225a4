from enum import StrEnum
from typing import NamedTuple, Optional, TypedDict

from eth_typing import ChecksumAddress
from hexbytes import HexBytes


class WithdrawalParams(NamedTuple):
    nonce: int
    sender: ChecksumAddress
    target: ChecksumAddress
    value: int
    gasLimit: int
    data: bytes


class Withdrawal(NamedTuple):
    """
    A withdrawal initiated on L2, as emitted by the ``MessagePassed`` event.

    - `withdrawal_params`: the six fields hashed into the withdrawal hash.
    - `withdrawal_hash`: 32-byte hash the portal keys proven/finalized
    records by.
    """

    withdrawal_params: WithdrawalParams
    withdrawal_hash: HexBytes


class ProtocolVersion(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class WithdrawalStatus(StrEnum):
    WAITING_TO_PROVE = "waiting-to-prove"
    READY_TO_PROVE = "ready-to-prove"
    WAITING_TO_FINALIZE = "waiting-to-finalize"
    READY_TO_FINALIZE = "ready-to-finalize"
    FINALIZED = "finalized"


class GameSearchResult(TypedDict):
    index: int
    metadata: bytes
    timestamp: int
    root_claim: bytes
    extra_data: bytes


class OutputProposal(TypedDict):
    """
    An L2 output committed on L1.

    - `output_index`: index in the `L2OutputOracle`, or the dispute game index.
    - `output_root`: committed output root (the game's root claim on v3).
    - `timestamp`: L1 timestamp of the proposal.
    - `l2_block_number`: L2 block the output commits to.
    """

    output_index: int
    output_root: bytes
    timestamp: int
    l2_block_number: int


class GameProposal(OutputProposal):
    metadata: bytes
    extra_data: bytes


class ProvenWithdrawalResponse(TypedDict):
    dispute_game_address: ChecksumAddress
    timestamp: int


class LegacyProvenWithdrawalResponse(TypedDict):
    output_root: bytes
    timestamp: int
    l2_output_index: int


class TimeToNextOutput(TypedDict):
    interval: int
    seconds: int
    timestamp: Optional[int]


class TimeToFinalize(TypedDict):
    period: int
    seconds: int
    timestamp: int
