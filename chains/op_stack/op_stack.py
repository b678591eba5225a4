"""
OP Stack withdrawal tracking (L2 -> L1).

This module provides a composable class for following a withdrawal initiated
on an OP Stack chain (Optimism, Base, etc.) through its proof and finalization
on Ethereum, without sending any transaction.
"""

from typing import List, Optional, Union

from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.types import TxReceipt

from utils.config import (
    DEFAULT_POLLING_INTERVAL,
    INTERVAL_BUFFER,
    ChainName,
    OPStackChainName,
)
from utils.poll import CancelToken
from utils.providers import get_web3
from .contracts import ContractReader, resolve_contracts
from .outputs import get_l2_output, get_time_to_finalize, get_time_to_next_l2_output
from .status import FaultProofStatusResolver, get_withdrawal_status
from .types import (
    OutputProposal,
    ProtocolVersion,
    ProvenWithdrawalResponse,
    TimeToFinalize,
    TimeToNextOutput,
    Withdrawal,
    WithdrawalStatus,
)
from .version import get_portal_version, resolve_portal_version
from .waiter import wait_for_next_l2_output
from .withdrawals import extract_withdrawals


class OPStack:
    """
    This class is to follow withdrawals of OP-Stack compatible chains
    like Optimism, Base, Unichain, etc.

    Parameters
    ----------
    chain_name: OPStackChainName
        Canonical identifier of the OP-Stack chain to connect to.

    l1_provider: Web3, optional
        Ethereum provider. Built from `.env` when omitted.

    l2_provider: Web3, optional
        L2 provider, used only to fetch withdrawal receipts. Built from `.env`
        when omitted.

    MORE INFO
    ----------
    A withdrawal is initiated on L2 through `L2ToL1MessagePasser.initiateWithdrawal()`
    and then has to be proven and finalized on Ethereum through the Optimism
    Portal:

    1. `waiting-to-prove`: no output proposal covers the withdrawal's L2 block yet.
    2. `ready-to-prove`: an output covers it; `proveWithdrawalTransaction` can be sent.
    3. `waiting-to-finalize`: proven, but the challenge period (~7 days) or the
       dispute game has not resolved yet.
    4. `ready-to-finalize`: `finalizeWithdrawalTransaction` can be sent.
    5. `finalized`: the withdrawal has been executed on L1.

    Portals before fault proofs (version 2.x) take outputs from the `L2OutputOracle`,
    which publishes at a fixed interval. Fault-proof portals (version 3.x) take them
    from dispute games created through the `DisputeGameFactory`. The portal version
    is read on every call unless provided.
    """

    def __init__(
        self,
        chain_name: OPStackChainName,
        l1_provider: Optional[Web3] = None,
        l2_provider: Optional[Web3] = None,
    ):
        self.chain_name = chain_name
        self.l1_provider = l1_provider or get_web3(ChainName.ETH_SEPOLIA)
        self._l2_provider = l2_provider
        self.contracts = resolve_contracts(chain_name)
        self.reader = ContractReader(self.l1_provider)

    @property
    def l2_provider(self) -> Web3:
        if self._l2_provider is None:
            self._l2_provider = get_web3(self.chain_name)
        return self._l2_provider

    def get_withdrawal_receipt(self, init_wd_txn_hash: HexBytes) -> TxReceipt:
        withdraw_receipt = self.l2_provider.eth.get_transaction_receipt(
            init_wd_txn_hash
        )

        if not withdraw_receipt:
            raise ValueError(
                f"Invalid receipt! Check if the txn_hash: {init_wd_txn_hash} is correct."
            )

        return withdraw_receipt

    def get_portal_version(self) -> ProtocolVersion:
        """
        Read the version of the Optimism Portal, which decides whether the
        chain runs fault proofs (``major >= 3``).
        """
        return get_portal_version(self.reader, self.contracts.portal)

    def parse_withdrawals(self, init_wd_txn_hash: HexBytes) -> List[Withdrawal]:
        """
        Extract the withdrawals emitted by an L2 `initiateWithdrawal` transaction.

        Parameters
        ----------
        init_wd_txn_hash : HexBytes
            Transaction hash of the L2 transaction that emits ``MessagePassed``.

        Returns
        -------
        List[Withdrawal]
            Each with its `WithdrawalParams` and verified withdrawal hash.
        """
        receipt = self.get_withdrawal_receipt(init_wd_txn_hash)

        return extract_withdrawals(receipt)

    def get_withdrawal_status(
        self,
        init_wd_txn_hash: HexBytes,
        portal_version: Optional[Union[int, ProtocolVersion]] = None,
        proof_submitter: Optional[ChecksumAddress] = None,
    ) -> WithdrawalStatus:
        """
        Return the status of the withdrawal initiated by an L2 transaction.

        Parameters
        ----------
        init_wd_txn_hash : HexBytes
            Transaction hash of the L2 `initiateWithdrawal` transaction.

        portal_version : int | ProtocolVersion, optional
            Skip reading `portal.version()` when already known.

        proof_submitter : ChecksumAddress, optional
            Account that proved the withdrawal. Read from the portal when omitted.

        Returns
        -------
        WithdrawalStatus
        """
        receipt = self.get_withdrawal_receipt(init_wd_txn_hash)

        return get_withdrawal_status(
            self.reader,
            self.contracts,
            receipt,
            portal_version=portal_version,
            proof_submitter=proof_submitter,
        )

    def get_l2_output(
        self,
        l2_block_number: int,
        portal_version: Optional[Union[int, ProtocolVersion]] = None,
    ) -> OutputProposal:
        """
        Fetch the output proposal covering `l2_block_number`.

        Raises
        ------
        OutputNotProposedError | ContractRevertError
            If no output covers the block yet.
        """
        version = resolve_portal_version(
            self.reader, self.contracts.portal, portal_version
        )

        return get_l2_output(self.reader, self.contracts, l2_block_number, version)

    def get_time_to_next_l2_output(
        self, l2_block_number: int, interval_buffer: float = INTERVAL_BUFFER
    ) -> TimeToNextOutput:
        """Estimate the seconds until the `L2OutputOracle` covers `l2_block_number`."""
        return get_time_to_next_l2_output(
            self.reader, self.contracts, l2_block_number, interval_buffer
        )

    def get_time_to_finalize(self, withdrawal_hash: HexBytes) -> TimeToFinalize:
        """Seconds left in the finalization period of a withdrawal proven on a legacy portal."""
        return get_time_to_finalize(self.reader, self.contracts, withdrawal_hash)

    def wait_for_next_l2_output(
        self,
        l2_block_number: int,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
        portal_version: Optional[Union[int, ProtocolVersion]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> OutputProposal:
        """
        Block until an output proposal covers `l2_block_number`.

        Examples
        --------
        >>> withdrawal_block = client.get_withdrawal_receipt(txn_hash)["blockNumber"]
        >>> output = client.wait_for_next_l2_output(withdrawal_block)
        >>> assert output["l2_block_number"] >= withdrawal_block
        """
        return wait_for_next_l2_output(
            self.reader,
            self.contracts,
            l2_block_number,
            polling_interval=polling_interval,
            portal_version=portal_version,
            cancel_token=cancel_token,
        )

    def get_proven_withdrawal_info(
        self,
        withdrawal_hash: HexBytes,
        proof_submitter: ChecksumAddress,
    ) -> ProvenWithdrawalResponse:
        """
        Retrieve the proof record of a withdrawal on a fault-proof portal.
        A ``timestamp`` of 0 means `proof_submitter` has not proven it.
        """
        resolver = FaultProofStatusResolver(self.reader, self.contracts)

        return resolver.get_proven_withdrawal_info(
            bytes(withdrawal_hash), proof_submitter
        )

    def is_finalized_withdrawal(self, withdrawal_hash: HexBytes) -> bool:
        """Check whether a withdrawal has already been finalized on L1."""
        return bool(
            self.reader.read(
                self.contracts.portal, "finalizedWithdrawals", bytes(withdrawal_hash)
            )
        )
