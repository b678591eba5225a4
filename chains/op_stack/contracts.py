"""
Read-only access to the OP Stack L1 contracts.

Every contract read in this package goes through `ContractReader.read`, which
maps web3 failures onto the package's error taxonomy:

* a revert becomes `ContractRevertError` carrying the bare revert string (or the
  custom error signature, when the ABI declares it);
* any transport / RPC failure becomes `ContractReadError`.

Nothing is retried here.
"""

from typing import Any, NamedTuple, Optional, Protocol, cast

from eth_typing import ChecksumAddress
from requests.exceptions import RequestException
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, Web3Exception

from utils.chain import get_abi, get_contract_error_info, get_revert_reason
from utils.config import (
    ABI_OPTIMISM_PORTAL,
    ABI_OPTIMISM_PORTAL_2,
    OP_STACK_ETHEREUM,
    OP_STACK_ETHEREUM_CONTRACTS,
    OPStackChainName,
)
from .custom_errors import ContractReadError, ContractRevertError, InvalidChainError


class ContractRef(NamedTuple):
    name: str
    address: ChecksumAddress
    abi_path: str


class OPStackContracts(NamedTuple):
    """L1 contracts of one OP Stack chain."""

    portal: ContractRef
    l2_output_oracle: Optional[ContractRef]
    dispute_game_factory: Optional[ContractRef]

    def legacy_portal(self) -> ContractRef:
        """The portal bound to the pre-fault-proof (v2) ABI."""
        return self.portal._replace(abi_path=ABI_OPTIMISM_PORTAL)

    def fault_proof_portal(self) -> ContractRef:
        """The portal bound to the fault-proof (v3) ABI."""
        return self.portal._replace(abi_path=ABI_OPTIMISM_PORTAL_2)


def resolve_contracts(chain_name: OPStackChainName) -> OPStackContracts:
    """
    Resolve the L1 contract addresses of an OP Stack chain from the address book
    in `utils.config`.

    Raises
    ------
    InvalidChainError
        If the chain, or its portal, is not configured.
    """
    contracts = OP_STACK_ETHEREUM_CONTRACTS.get(cast(OPStackChainName, chain_name))

    if not contracts:
        raise InvalidChainError(f"Invalid chain provided: {chain_name}")

    def _ref(contract: OP_STACK_ETHEREUM) -> Optional[ContractRef]:
        info = contracts.get(contract)
        if not info:
            return None
        return ContractRef(contract.value, info["address"], info["ABI"])

    portal = _ref(OP_STACK_ETHEREUM.OPTIMISM_PORTAL)

    if portal is None:
        raise InvalidChainError(f"No OptimismPortal configured for {chain_name}")

    return OPStackContracts(
        portal=portal,
        l2_output_oracle=_ref(OP_STACK_ETHEREUM.L2_OUTPUT_ORACLE),
        dispute_game_factory=_ref(OP_STACK_ETHEREUM.DISPUTE_GAME_FACTORY),
    )


class ContractStateReader(Protocol):
    """Anything able to call a view function on a contract, like `ContractReader`."""

    def read(self, ref: ContractRef, function_name: str, *args: Any) -> Any: ...


def require_contract(ref: Optional[ContractRef], name: str) -> ContractRef:
    if ref is None:
        raise InvalidChainError(f"`{name}` is not configured for this chain.")
    return ref


class ContractReader:
    """
    Calls view functions on L1 contracts through a web3 provider.

    Parameters
    ----------
    w3 : Web3
        Provider connected to the chain the contracts live on.
    """

    def __init__(self, w3: Web3):
        self.w3 = w3

    def contract(self, ref: ContractRef) -> Contract:
        return self.w3.eth.contract(address=ref.address, abi=get_abi(ref.abi_path))

    def read(self, ref: ContractRef, function_name: str, *args: Any) -> Any:
        """
        Call `function_name(*args)` on `ref` against the latest block.

        Raises
        ------
        ContractRevertError
            If the call reverts.
        ContractReadError
            If the node cannot be reached or returns an RPC error.
        """
        contract = self.contract(ref)

        try:
            return getattr(contract.functions, function_name)(*args).call()
        except ContractLogicError as e:
            error_info = get_contract_error_info(contract, e)
            reason = error_info.signature if error_info else get_revert_reason(e)
            raise ContractRevertError(
                reason, function_name=function_name, original_error=e
            ) from e
        except (Web3Exception, RequestException, OSError) as e:
            raise ContractReadError(
                f"Reading `{ref.name}.{function_name}` failed: {e}", original_error=e
            ) from e
