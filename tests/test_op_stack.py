"""
Tests for the `OPStack` facade, with mocked providers and scripted reads.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes

from chains.op_stack.op_stack import OPStack
from chains.op_stack.types import ProtocolVersion, WithdrawalStatus
from helpers import (
    FACTORY,
    GAME_ADDRESS,
    PORTAL,
    PROVER,
    SENDER,
    FakeReader,
    game,
    make_receipt,
)
from utils.config import ChainName

TX_HASH = HexBytes(b"\x11" * 32)


@pytest.fixture
def client(withdrawal):
    l2_provider = MagicMock()
    l2_provider.eth.get_transaction_receipt.return_value = make_receipt(withdrawal)

    client = OPStack(ChainName.OP_SEPOLIA, l1_provider=MagicMock(), l2_provider=l2_provider)
    client.reader = FakeReader()
    return client


def test_parse_withdrawals(client, withdrawal):
    withdrawals = client.parse_withdrawals(TX_HASH)

    assert withdrawals == [withdrawal]
    client.l2_provider.eth.get_transaction_receipt.assert_called_once_with(TX_HASH)


def test_missing_receipt(client):
    client.l2_provider.eth.get_transaction_receipt.return_value = None

    with pytest.raises(ValueError):
        client.get_withdrawal_receipt(TX_HASH)


def test_get_withdrawal_status(client):
    client.reader.on(FACTORY, "gameCount", 1)
    client.reader.on(PORTAL, "respectedGameType", 0)
    client.reader.on(FACTORY, "findLatestGames", [game(0, 2_000)])
    client.reader.on(PORTAL, "numProofSubmitters", 1)
    client.reader.on(PORTAL, "proofSubmitters", PROVER)
    client.reader.on(PORTAL, "provenWithdrawals", (GAME_ADDRESS, 1_700_000_000))
    client.reader.on(PORTAL, "finalizedWithdrawals", False)
    client.reader.on(PORTAL, "checkWithdrawal", None)

    status = client.get_withdrawal_status(TX_HASH, portal_version=3)

    assert status is WithdrawalStatus.READY_TO_FINALIZE


def test_get_portal_version(client):
    client.reader.on(PORTAL, "version", "3.10.0")

    assert client.get_portal_version() == ProtocolVersion(3, 10, 0)


def test_get_proven_withdrawal_info(client, withdrawal):
    client.reader.on(PORTAL, "provenWithdrawals", (GAME_ADDRESS.lower(), 42))

    proven = client.get_proven_withdrawal_info(withdrawal.withdrawal_hash, SENDER)

    assert proven == {"dispute_game_address": GAME_ADDRESS, "timestamp": 42}


def test_is_finalized_withdrawal(client, withdrawal):
    client.reader.on(PORTAL, "finalizedWithdrawals", True)

    assert client.is_finalized_withdrawal(withdrawal.withdrawal_hash)
    assert client.reader.calls == [
        ("OPTIMISM_PORTAL", "finalizedWithdrawals", (bytes(withdrawal.withdrawal_hash),))
    ]


def test_get_l2_output(client):
    client.reader.on(FACTORY, "gameCount", 1)
    client.reader.on(PORTAL, "respectedGameType", 0)
    client.reader.on(FACTORY, "findLatestGames", [game(3, 2_000)])

    output = client.get_l2_output(1_500, portal_version=3)

    assert output["output_index"] == 3
    assert output["l2_block_number"] == 2_000
