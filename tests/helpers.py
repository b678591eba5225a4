"""
Shared helpers for the OP Stack withdrawal tests: a scripted contract reader,
a non-sleeping cancel token and builders for receipts and dispute games.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Tuple

from eth_abi.abi import encode
from eth_utils.address import to_checksum_address
from hexbytes import HexBytes
from web3 import Web3

from chains.op_stack.contracts import ContractRef
from chains.op_stack.types import Withdrawal, WithdrawalParams
from chains.op_stack.withdrawals import MESSAGE_PASSER_ADDRESS, hash_withdrawal
from utils.poll import CancelToken

PORTAL = "OPTIMISM_PORTAL"
ORACLE = "L2_OUTPUT_ORACLE"
FACTORY = "DISPUTE_GAME_FACTORY"

SENDER = to_checksum_address("0x" + "aa" * 20)
TARGET = to_checksum_address("0x" + "bb" * 20)
GAME_ADDRESS = to_checksum_address("0x" + "cc" * 20)
PROVER = to_checksum_address("0x" + "ee" * 20)
L2_CROSS_DOMAIN_MESSENGER = to_checksum_address("0x4200000000000000000000000000000000000007")

MESSAGE_PASSED_TOPIC = Web3.keccak(
    text="MessagePassed(uint256,address,address,uint256,uint256,bytes,bytes32)"
)


class FakeReader:
    """
    Scripted stand-in for `ContractReader`.

    A response is either a value, an exception instance (raised), or a
    callable receiving the call's arguments.
    """

    def __init__(self) -> None:
        self.responses: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, tuple]] = []
        self._lock = threading.Lock()

    def on(self, contract: str, function_name: str, response: Any) -> "FakeReader":
        self.responses[(contract, function_name)] = response
        return self

    def read(self, ref: ContractRef, function_name: str, *args: Any) -> Any:
        with self._lock:
            self.calls.append((ref.name, function_name, args))

        key = (ref.name, function_name)
        if key not in self.responses:
            raise AssertionError(f"Unexpected read: {ref.name}.{function_name}{args}")

        response = self.responses[key]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(*args)
        return response

    def count(self, function_name: str) -> int:
        with self._lock:
            return sum(1 for _, name, _ in self.calls if name == function_name)


class RecordingToken(CancelToken):
    """CancelToken that records requested waits instead of sleeping."""

    def __init__(self) -> None:
        super().__init__()
        self.waits: List[float] = []

    def wait(self, timeout: float) -> bool:
        self.waits.append(timeout)
        return self.cancelled


def sequence(*responses: Any) -> Callable[..., Any]:
    """Serve `responses` one call at a time, repeating the last one."""
    remaining = list(responses)

    def respond(*args: Any) -> Any:
        response = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(response, BaseException):
            raise response
        return response

    return respond


def make_withdrawal(
    nonce: int = 1,
    sender: str = SENDER,
    target: str = TARGET,
    value: int = 10**15,
    gas_limit: int = 21_000,
    data: bytes = b"",
) -> Withdrawal:
    params = WithdrawalParams(
        nonce=nonce,
        sender=to_checksum_address(sender),
        target=to_checksum_address(target),
        value=value,
        gasLimit=gas_limit,
        data=data,
    )
    return Withdrawal(withdrawal_params=params, withdrawal_hash=hash_withdrawal(params))


def message_passed_log(
    withdrawal: Withdrawal, log_index: int = 0, block_number: int = 1_000
) -> Dict[str, Any]:
    params = withdrawal.withdrawal_params
    return {
        "address": MESSAGE_PASSER_ADDRESS,
        "topics": [
            HexBytes(MESSAGE_PASSED_TOPIC),
            HexBytes(encode(["uint256"], [params.nonce])),
            HexBytes(encode(["address"], [params.sender])),
            HexBytes(encode(["address"], [params.target])),
        ],
        "data": HexBytes(
            encode(
                ["uint256", "uint256", "bytes", "bytes32"],
                [
                    params.value,
                    params.gasLimit,
                    params.data,
                    bytes(withdrawal.withdrawal_hash),
                ],
            )
        ),
        "logIndex": log_index,
        "transactionIndex": 0,
        "transactionHash": HexBytes(b"\x11" * 32),
        "blockHash": HexBytes(b"\x22" * 32),
        "blockNumber": block_number,
    }


def make_receipt(*withdrawals: Withdrawal, block_number: int = 1_000) -> Dict[str, Any]:
    return {
        "transactionHash": HexBytes(b"\x11" * 32),
        "blockNumber": block_number,
        "logs": [
            message_passed_log(withdrawal, index, block_number)
            for index, withdrawal in enumerate(withdrawals)
        ],
    }


def game(index: int, l2_block_number: int, timestamp: int = 1_700_000_000) -> tuple:
    """A `findLatestGames` entry as returned by web3."""
    return (
        index,
        index.to_bytes(32, "big"),
        timestamp,
        l2_block_number.to_bytes(32, "big"),
        encode(["uint256"], [l2_block_number]),
    )
