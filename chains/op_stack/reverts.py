"""
Known revert reasons of the OP Stack L1 contracts and the withdrawal status
each one implies.

The portal reports why a withdrawal cannot progress through `require` strings,
or through custom errors on later releases (matched by their signature).
Those strings are treated as a closed set: anything outside it classifies as
`RevertReason.UNKNOWN` and must surface as an error rather than a status.

ref: https://github.com/ethereum-optimism/optimism/blob/develop/packages/contracts-bedrock/src/L1/OptimismPortal2.sol
"""

from enum import Enum
from typing import Dict, Final, FrozenSet, Optional

from .custom_errors import ContractRevertError, OutputNotProposedError
from .types import WithdrawalStatus


class RevertReason(Enum):
    OUTPUT_NOT_PROPOSED = (
        "L2OutputOracle: cannot get output for a block that has not been proposed"
    )
    DISPUTE_GAME_BLACKLISTED = "OptimismPortal: dispute game has been blacklisted"
    UNPROVEN = "OptimismPortal: withdrawal has not been proven yet"
    PROOF_BEFORE_GAME_CREATION = (
        "OptimismPortal: withdrawal timestamp less than dispute game creation timestamp"
    )
    PROOF_NOT_MATURED = "OptimismPortal: proven withdrawal has not matured yet"
    OUTPUT_NOT_FINALIZED = "OptimismPortal: output proposal has not been finalized yet"
    INVALID_GAME_TYPE = "OptimismPortal: invalid game type"
    GAME_BEFORE_RESPECTED_TYPE_UPDATE = (
        "OptimismPortal: dispute game created before respected game type was updated"
    )
    OUTPUT_IN_AIR_GAP = "OptimismPortal: output proposal in air-gap"
    ALREADY_FINALIZED = "OptimismPortal: withdrawal has already been finalized"
    # Custom errors of later OptimismPortal2 releases, decoded to their signature
    UNPROVEN_ERROR = "OptimismPortal_Unproven()"
    PROOF_NOT_OLD_ENOUGH_ERROR = "OptimismPortal_ProofNotOldEnough()"
    INVALID_PROOF_TIMESTAMP_ERROR = "OptimismPortal_InvalidProofTimestamp()"
    INVALID_ROOT_CLAIM_ERROR = "OptimismPortal_InvalidRootClaim()"
    ALREADY_FINALIZED_ERROR = "OptimismPortal_AlreadyFinalized()"
    UNKNOWN = None

    @classmethod
    def from_message(cls, message: Optional[str]) -> "RevertReason":
        if message is None:
            return cls.UNKNOWN

        try:
            return cls(message.strip())
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def classify(cls, error: BaseException) -> Optional["RevertReason"]:
        """
        Classify an exception raised by a contract read.

        Returns ``None`` for errors that are not reverts at all (transport
        failures, decoding errors), and `UNKNOWN` for reverts whose reason is
        not in the table.
        """
        if isinstance(error, OutputNotProposedError):
            return cls.OUTPUT_NOT_PROPOSED

        if isinstance(error, ContractRevertError):
            return cls.from_message(error.reason)

        return None


# Revert reasons of `OptimismPortal2.checkWithdrawal` that describe a
# withdrawal's progress rather than a failure.
CHECK_WITHDRAWAL_REVERTS: Final[FrozenSet[RevertReason]] = frozenset(
    {
        RevertReason.DISPUTE_GAME_BLACKLISTED,
        RevertReason.UNPROVEN,
        RevertReason.PROOF_BEFORE_GAME_CREATION,
        RevertReason.PROOF_NOT_MATURED,
        RevertReason.OUTPUT_NOT_FINALIZED,
        RevertReason.INVALID_GAME_TYPE,
        RevertReason.GAME_BEFORE_RESPECTED_TYPE_UPDATE,
        RevertReason.OUTPUT_IN_AIR_GAP,
        RevertReason.ALREADY_FINALIZED,
        RevertReason.UNPROVEN_ERROR,
        RevertReason.PROOF_NOT_OLD_ENOUGH_ERROR,
        RevertReason.INVALID_PROOF_TIMESTAMP_ERROR,
        RevertReason.INVALID_ROOT_CLAIM_ERROR,
        RevertReason.ALREADY_FINALIZED_ERROR,
    }
)


REVERT_STATUS: Final[Dict[RevertReason, WithdrawalStatus]] = {
    RevertReason.OUTPUT_NOT_PROPOSED: WithdrawalStatus.WAITING_TO_PROVE,
    RevertReason.UNPROVEN: WithdrawalStatus.READY_TO_PROVE,
    RevertReason.ALREADY_FINALIZED: WithdrawalStatus.FINALIZED,
    RevertReason.DISPUTE_GAME_BLACKLISTED: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.PROOF_BEFORE_GAME_CREATION: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.PROOF_NOT_MATURED: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.OUTPUT_NOT_FINALIZED: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.INVALID_GAME_TYPE: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.GAME_BEFORE_RESPECTED_TYPE_UPDATE: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.OUTPUT_IN_AIR_GAP: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.UNPROVEN_ERROR: WithdrawalStatus.READY_TO_PROVE,
    RevertReason.ALREADY_FINALIZED_ERROR: WithdrawalStatus.FINALIZED,
    RevertReason.PROOF_NOT_OLD_ENOUGH_ERROR: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.INVALID_PROOF_TIMESTAMP_ERROR: WithdrawalStatus.WAITING_TO_FINALIZE,
    RevertReason.INVALID_ROOT_CLAIM_ERROR: WithdrawalStatus.WAITING_TO_FINALIZE,
}


def is_output_not_proposed(error: BaseException) -> bool:
    return RevertReason.classify(error) is RevertReason.OUTPUT_NOT_PROPOSED
