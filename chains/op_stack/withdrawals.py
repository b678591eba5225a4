from typing import Any, List, Mapping

from eth_abi.abi import encode
from hexbytes import HexBytes
from web3 import Web3
from web3.logs import DISCARD

from utils.chain import get_abi
from utils.config import OP_STACK_L2, OP_STACK_L2_CONTRACTS, ABI_L2_TO_L1_MESSAGE_PASSER
from .custom_errors import InvalidWithdrawalHashError, ReceiptContainsNoWithdrawalsError
from .types import Withdrawal, WithdrawalParams

# L2ToL1MessagePasser is a predeploy at the same address on every OP Stack chain
MESSAGE_PASSER_ADDRESS = next(iter(OP_STACK_L2_CONTRACTS.values()))[
    OP_STACK_L2.L2_TO_L1_MESSAGE_PASSER
]["address"]

WITHDRAWAL_TYPES = ["uint256", "address", "address", "uint256", "uint256", "bytes"]


def hash_withdrawal(withdrawal_params: WithdrawalParams) -> HexBytes:
    """
    Compute the withdrawal hash the portal keys its records by.

    ``keccak256(abi.encode(nonce, sender, target, value, gasLimit, data))``

    ref: https://github.com/ethereum-optimism/optimism/blob/develop/packages/contracts-bedrock/src/libraries/Hashing.sol
    """
    return HexBytes(Web3.keccak(encode(WITHDRAWAL_TYPES, list(withdrawal_params))))


def verify_withdrawal_hash(withdrawal: Withdrawal) -> bool:
    """
    Check that the hash emitted on L2 matches the one recomputed from the
    withdrawal's parameters.
    """
    computed_hash = hash_withdrawal(withdrawal.withdrawal_params)

    return HexBytes(withdrawal.withdrawal_hash) == computed_hash


def extract_withdrawals(receipt: Mapping[str, Any]) -> List[Withdrawal]:
    """
    Extract every withdrawal initiated by an L2 transaction.

    Parameters
    ----------
    receipt : TxReceipt
        Receipt of the L2 transaction that called `initiateWithdrawal`.

    Returns
    -------
    List[Withdrawal]
        Withdrawals in log order.

    Raises
    ------
    ReceiptContainsNoWithdrawalsError
        If the receipt has no ``MessagePassed`` event.
    InvalidWithdrawalHashError
        If an emitted withdrawal hash does not match its parameters.
    """
    # Decoding is local, no provider connection is made
    message_passer = Web3().eth.contract(
        address=MESSAGE_PASSER_ADDRESS, abi=get_abi(ABI_L2_TO_L1_MESSAGE_PASSER)
    )

    events = message_passer.events.MessagePassed().process_receipt(
        receipt, errors=DISCARD
    )

    if not events:
        transaction_hash = receipt.get("transactionHash")
        raise ReceiptContainsNoWithdrawalsError(
            HexBytes(transaction_hash).to_0x_hex() if transaction_hash else None
        )

    withdrawals: List[Withdrawal] = []

    for event in events:
        args = event.get("args")

        withdrawal = Withdrawal(
            withdrawal_params=WithdrawalParams(
                nonce=args.get("nonce"),
                sender=args.get("sender"),
                target=args.get("target"),
                value=args.get("value"),
                gasLimit=args.get("gasLimit"),
                data=args.get("data"),
            ),
            withdrawal_hash=HexBytes(args.get("withdrawalHash")),
        )

        if not verify_withdrawal_hash(withdrawal):
            raise InvalidWithdrawalHashError(
                f"Emitted withdrawal hash {withdrawal.withdrawal_hash.to_0x_hex()} "
                f"does not match nonce {withdrawal.withdrawal_params.nonce}"
            )

        withdrawals.append(withdrawal)

    return withdrawals
