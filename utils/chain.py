import json
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Sequence
from eth_typing import ABIComponent
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractCustomError, ContractLogicError


# ABI paths in `utils.config` are relative to the project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

REVERT_PREFIX = "execution reverted: "


def get_abi(path: str) -> List[Any]:
    abi_path = Path(path)

    if not abi_path.is_absolute():
        abi_path = PROJECT_ROOT / abi_path

    if abi_path.is_file():
        with open(abi_path, "r") as file:
            abi = json.load(file)

        return abi
    else:
        raise FileNotFoundError(f"File path not found: {abi_path}")


class ContractErrorInfo(NamedTuple):
    """
    Named tuple containing contract error information.

    Attributes:
        name: Error name (e.g., "OptimismPortal_Unproven")
        signature: Full error signature (e.g., "OptimismPortal_Unproven()")
        inputs: List of input parameters from ABI
        selector: 4-byte error selector hex string (e.g., "0x80698456")
    """

    name: str
    signature: str
    inputs: Sequence[ABIComponent]
    selector: str


def get_contract_error_info(
    contract: Contract, error: Exception
) -> Optional[ContractErrorInfo]:
    """
    Match a contract error to its ABI definition and return error information.

    Args:
        contract: Web3 Contract instance containing ABI
        error: Exception raised by contract call

    Returns:
        ContractErrorInfo named tuple if matched, None otherwise

    Example:
        >>> try:
        >>>     contract.functions.checkWithdrawal(withdrawal_hash, sender).call()
        >>> except Exception as e:
        >>>     error_info = get_contract_error_info(contract, e)
        >>>     if error_info:
        >>>         print(f"Error: {error_info.name}")
    """
    if not isinstance(error, ContractCustomError):
        return None

    error_selector = HexBytes(error.args[0])[:4].to_0x_hex()

    for item in contract.abi:
        if item.get("type") != "error":
            continue

        error_name = item.get("name")
        if error_name is None:
            continue

        inputs = item.get("inputs", [])

        input_types = []
        for inp in inputs:
            inp_type = inp.get("type")
            if inp_type is None:
                continue
            input_types.append(inp_type)

        signature = f"{error_name}({','.join(input_types)})"

        hash_bytes = Web3.keccak(text=signature)
        selector = HexBytes(hash_bytes[:4]).to_0x_hex()

        if selector == error_selector:
            return ContractErrorInfo(
                name=error_name,
                signature=signature,
                inputs=inputs,
                selector=selector,
            )

    return None


def get_revert_reason(error: ContractLogicError) -> str:
    """
    Extract the bare revert string from a web3 `ContractLogicError`.

    Nodes prefix the reason with ``execution reverted: ``; the prefix is
    stripped so the result can be compared against the contract's own
    `require` messages.
    """
    message = error.message if error.message is not None else str(error)

    if message.startswith(REVERT_PREFIX):
        return message[len(REVERT_PREFIX) :]

    return message
