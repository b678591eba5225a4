"""
Withdrawal status resolution.

A withdrawal moves through five states on L1::

    waiting-to-prove -> ready-to-prove -> waiting-to-finalize
        -> ready-to-finalize -> finalized

The state is never stored anywhere; it is derived from four reads issued
concurrently against the portal and its output source. All four are awaited
even when some fail, because a failure (a revert) is often the answer. The
outcomes are then inspected in a fixed order, so the result does not depend on
which read finished first.

Legacy (v2) and fault-proof (v3) portals expose different reads, so each has
its own `WithdrawalStatusResolver`; `get_status_resolver` picks one per
portal version.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, Union

from eth_typing import ChecksumAddress
from web3 import Web3

from utils.concurrency import Settled, settle_all
from utils.logger import get_logger
from .contracts import ContractStateReader, OPStackContracts
from .custom_errors import ContractRevertError, UnclassifiedRevertError
from .outputs import (
    get_fault_proof_l2_output,
    get_legacy_l2_output,
    get_legacy_proven_withdrawal,
    get_time_to_finalize,
)
from .reverts import (
    CHECK_WITHDRAWAL_REVERTS,
    REVERT_STATUS,
    RevertReason,
    is_output_not_proposed,
)
from .types import (
    ProtocolVersion,
    ProvenWithdrawalResponse,
    Withdrawal,
    WithdrawalStatus,
)
from .version import is_legacy, resolve_portal_version
from .withdrawals import extract_withdrawals

log = get_logger(__name__)


class WithdrawalStatusResolver(ABC):
    """
    Derives the status of one withdrawal from live contract reads.

    Parameters
    ----------
    reader : ContractStateReader
        Performs the contract reads.

    contracts : OPStackContracts
        L1 contracts of the chain the withdrawal was initiated on.

    clock : Callable[[], float], optional
        Current unix time, ``time.time`` by default.
    """

    def __init__(
        self,
        reader: ContractStateReader,
        contracts: OPStackContracts,
        clock: Callable[[], float] = time.time,
    ):
        self.reader = reader
        self.contracts = contracts
        self.clock = clock

    @abstractmethod
    def resolve(self, withdrawal: Withdrawal, l2_block_number: int) -> WithdrawalStatus:
        """
        Return the status of `withdrawal`, initiated in L2 block
        `l2_block_number`.
        """

    @staticmethod
    def _output_status(output: Settled[Any]) -> Optional[WithdrawalStatus]:
        # An output that is not proposed yet is the only failure that decides
        # a status; every other failure of the output read is fatal.
        error = output.error

        if error is None:
            return None

        if is_output_not_proposed(error):
            return WithdrawalStatus.WAITING_TO_PROVE

        raise error


class FaultProofStatusResolver(WithdrawalStatusResolver):
    """
    Status resolution against `OptimismPortal2` (portal version 3.x).

    Reads, in priority order:

    1. the dispute game covering the withdrawal's L2 block,
    2. ``provenWithdrawals(withdrawalHash, proofSubmitter)``,
    3. ``finalizedWithdrawals(withdrawalHash)``,
    4. a simulated ``checkWithdrawal(withdrawalHash, proofSubmitter)``.

    ``checkWithdrawal`` passing means the withdrawal can be finalized now. Its
    known revert reasons map to a status through `REVERT_STATUS`; any other
    reason raises `UnclassifiedRevertError`.

    Parameters
    ----------
    proof_submitter : ChecksumAddress, optional
        Account that proved the withdrawal. When omitted, the latest prover
        recorded by the portal is used, falling back to the withdrawal's
        sender if the portal does not track provers or none has proven it.
    """

    def __init__(
        self,
        reader: ContractStateReader,
        contracts: OPStackContracts,
        clock: Callable[[], float] = time.time,
        proof_submitter: Optional[ChecksumAddress] = None,
    ):
        super().__init__(reader, contracts, clock)
        self.proof_submitter = proof_submitter

    def get_proven_withdrawal_info(
        self, withdrawal_hash: bytes, proof_submitter: ChecksumAddress
    ) -> ProvenWithdrawalResponse:
        dispute_game_address, timestamp = self.reader.read(
            self.contracts.fault_proof_portal(),
            "provenWithdrawals",
            withdrawal_hash,
            proof_submitter,
        )

        return {
            "dispute_game_address": Web3.to_checksum_address(dispute_game_address),
            "timestamp": timestamp,
        }

    def get_proof_submitter(self, withdrawal: Withdrawal) -> ChecksumAddress:
        """
        Return the account whose proof of `withdrawal` the portal last recorded.

        Transport failures propagate; reverts fall back to the sender.
        """
        portal = self.contracts.fault_proof_portal()
        withdrawal_hash = bytes(withdrawal.withdrawal_hash)
        sender = withdrawal.withdrawal_params.sender

        try:
            num_proof_submitters = self.reader.read(
                portal, "numProofSubmitters", withdrawal_hash
            )
        except ContractRevertError:
            num_proof_submitters = 1

        if num_proof_submitters == 0:
            return sender

        try:
            proof_submitter = self.reader.read(
                portal, "proofSubmitters", withdrawal_hash, num_proof_submitters - 1
            )
        except ContractRevertError:
            log.debug("proof_submitter_fallback", sender=sender)
            return sender

        return Web3.to_checksum_address(proof_submitter)

    def resolve(self, withdrawal: Withdrawal, l2_block_number: int) -> WithdrawalStatus:
        portal = self.contracts.fault_proof_portal()
        withdrawal_hash = bytes(withdrawal.withdrawal_hash)
        proof_submitter = self.proof_submitter or self.get_proof_submitter(withdrawal)

        output, proven, finalized, check = settle_all(
            lambda: get_fault_proof_l2_output(
                self.reader, self.contracts, l2_block_number
            ),
            lambda: self.get_proven_withdrawal_info(withdrawal_hash, proof_submitter),
            lambda: self.reader.read(portal, "finalizedWithdrawals", withdrawal_hash),
            lambda: self.reader.read(
                portal, "checkWithdrawal", withdrawal_hash, proof_submitter
            ),
        )

        status = self._output_status(output)
        if status is not None:
            return status

        proven_withdrawal = proven.unwrap()
        is_finalized = finalized.unwrap()

        if is_finalized:
            return WithdrawalStatus.FINALIZED

        if proven_withdrawal["timestamp"] == 0:
            return WithdrawalStatus.READY_TO_PROVE

        return self._check_withdrawal_status(check)

    @staticmethod
    def _check_withdrawal_status(check: Settled[Any]) -> WithdrawalStatus:
        error = check.error

        if error is None:
            return WithdrawalStatus.READY_TO_FINALIZE

        if not isinstance(error, ContractRevertError):
            raise error

        reason = RevertReason.from_message(error.reason)

        if reason not in CHECK_WITHDRAWAL_REVERTS:
            raise UnclassifiedRevertError.from_revert(error) from error

        return REVERT_STATUS[reason]


class LegacyStatusResolver(WithdrawalStatusResolver):
    """
    Status resolution against the pre-fault-proof `OptimismPortal` (2.x) and
    its `L2OutputOracle`.

    Reads, in priority order:

    1. the oracle output covering the withdrawal's L2 block,
    2. ``provenWithdrawals(withdrawalHash)``,
    3. ``finalizedWithdrawals(withdrawalHash)``,
    4. the seconds left in the finalization period.
    """

    def resolve(self, withdrawal: Withdrawal, l2_block_number: int) -> WithdrawalStatus:
        portal = self.contracts.legacy_portal()
        withdrawal_hash = bytes(withdrawal.withdrawal_hash)

        output, proven, finalized, time_to_finalize = settle_all(
            lambda: get_legacy_l2_output(self.reader, self.contracts, l2_block_number),
            lambda: get_legacy_proven_withdrawal(
                self.reader, self.contracts, withdrawal_hash
            ),
            lambda: self.reader.read(portal, "finalizedWithdrawals", withdrawal_hash),
            lambda: get_time_to_finalize(
                self.reader, self.contracts, withdrawal_hash, self.clock
            ),
        )

        status = self._output_status(output)
        if status is not None:
            return status

        proven_withdrawal = proven.unwrap()
        is_finalized = finalized.unwrap()

        if is_finalized:
            return WithdrawalStatus.FINALIZED

        if proven_withdrawal["timestamp"] == 0:
            return WithdrawalStatus.READY_TO_PROVE

        if time_to_finalize.unwrap()["seconds"] > 0:
            return WithdrawalStatus.WAITING_TO_FINALIZE

        return WithdrawalStatus.READY_TO_FINALIZE


def get_status_resolver(
    version: ProtocolVersion,
    reader: ContractStateReader,
    contracts: OPStackContracts,
    clock: Callable[[], float] = time.time,
    proof_submitter: Optional[ChecksumAddress] = None,
) -> WithdrawalStatusResolver:
    if is_legacy(version):
        return LegacyStatusResolver(reader, contracts, clock)

    return FaultProofStatusResolver(reader, contracts, clock, proof_submitter)


def get_withdrawal_status(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    receipt: Mapping[str, Any],
    portal_version: Optional[Union[int, ProtocolVersion]] = None,
    proof_submitter: Optional[ChecksumAddress] = None,
    clock: Callable[[], float] = time.time,
) -> WithdrawalStatus:
    """
    Return the current status of the first withdrawal initiated by an L2
    transaction.

    Parameters
    ----------
    reader : ContractStateReader
        Reads the L1 contracts.

    contracts : OPStackContracts
        L1 contracts of the withdrawal's chain.

    receipt : TxReceipt
        Receipt of the L2 transaction that initiated the withdrawal.

    portal_version : int | ProtocolVersion, optional
        Known portal version (``2`` or ``3``). Read from the portal when
        omitted.

    proof_submitter : ChecksumAddress, optional
        Account that proved the withdrawal (v3 only). Defaults to the
        latest prover recorded by the portal.

    Returns
    -------
    WithdrawalStatus

    Raises
    ------
    ReceiptContainsNoWithdrawalsError
        Before any contract read, if the receipt initiated no withdrawal.
    ContractReadError
        If a read fails with a transport error, or reverts unexpectedly.
    UnclassifiedRevertError
        If ``checkWithdrawal`` reverts with an unknown reason.
    """
    withdrawal = extract_withdrawals(receipt)[0]
    l2_block_number = receipt["blockNumber"]

    version = resolve_portal_version(reader, contracts.portal, portal_version)
    resolver = get_status_resolver(version, reader, contracts, clock, proof_submitter)

    status = resolver.resolve(withdrawal, l2_block_number)

    log.info(
        "withdrawal_status",
        withdrawal_hash=withdrawal.withdrawal_hash.to_0x_hex(),
        l2_block_number=l2_block_number,
        portal_version=str(version),
        status=str(status),
    )

    return status
