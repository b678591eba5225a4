"""
Tests for waiting on the L2 output covering a withdrawal.
"""

from __future__ import annotations

import threading

import pytest
from eth_abi.exceptions import DecodingError

from chains.op_stack.custom_errors import (
    ContractReadError,
    ContractRevertError,
    PollingCancelledError,
)
from chains.op_stack.reverts import RevertReason
from chains.op_stack.waiter import wait_for_next_l2_output
from helpers import FACTORY, ORACLE, PORTAL, RecordingToken, game, sequence
from utils.poll import CancelToken

TARGET_BLOCK = 5_000
ROOT = b"\xab" * 32


@pytest.fixture
def games(reader):
    reader.on(FACTORY, "gameCount", 150)
    reader.on(PORTAL, "respectedGameType", 0)
    return reader


def test_finds_covering_game_among_latest(games, contracts):
    latest = [game(149, TARGET_BLOCK + 1)] + [
        game(index, TARGET_BLOCK - 150 + index) for index in range(148, 49, -1)
    ]
    games.on(FACTORY, "findLatestGames", latest)
    token = RecordingToken()

    output = wait_for_next_l2_output(
        games, contracts, TARGET_BLOCK, portal_version=3, cancel_token=token
    )

    assert output["output_index"] == 149
    assert output["l2_block_number"] == TARGET_BLOCK + 1
    assert ("DISPUTE_GAME_FACTORY", "findLatestGames", (0, 149, 100)) in games.calls
    assert token.waits == []
    assert token.cancelled


def test_keeps_polling_until_game_appears(games, contracts):
    games.on(
        FACTORY,
        "findLatestGames",
        sequence(
            [game(10, TARGET_BLOCK - 10)],
            [game(10, TARGET_BLOCK - 10)],
            [game(11, TARGET_BLOCK + 20), game(10, TARGET_BLOCK - 10)],
        ),
    )
    token = RecordingToken()

    output = wait_for_next_l2_output(
        games,
        contracts,
        TARGET_BLOCK,
        polling_interval=2.5,
        portal_version=3,
        cancel_token=token,
    )

    assert output["output_index"] == 11
    assert games.count("findLatestGames") == 3
    assert token.waits == [2.5, 2.5]


def test_malformed_game_data_is_fatal(games, contracts):
    malformed = (1, b"\x00" * 32, 0, ROOT, b"\x01")
    games.on(FACTORY, "findLatestGames", [malformed])
    token = RecordingToken()

    with pytest.raises(DecodingError):
        wait_for_next_l2_output(
            games, contracts, TARGET_BLOCK, portal_version=3, cancel_token=token
        )

    assert token.cancelled
    assert games.count("findLatestGames") == 1


def test_read_failure_is_fatal(games, contracts):
    error = ContractReadError("connection refused")
    games.on(FACTORY, "gameCount", error)
    token = RecordingToken()

    with pytest.raises(ContractReadError) as exc_info:
        wait_for_next_l2_output(
            games, contracts, TARGET_BLOCK, portal_version=3, cancel_token=token
        )

    assert exc_info.value is error
    assert token.cancelled


def test_cancelled_token_stops_before_polling(games, contracts):
    games.on(FACTORY, "findLatestGames", [])
    token = CancelToken()
    token.cancel()

    with pytest.raises(PollingCancelledError):
        wait_for_next_l2_output(
            games, contracts, TARGET_BLOCK, portal_version=3, cancel_token=token
        )

    assert games.count("findLatestGames") == 0


def test_cancel_from_another_thread(games, contracts):
    games.on(FACTORY, "findLatestGames", [])
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()

    try:
        with pytest.raises(PollingCancelledError):
            wait_for_next_l2_output(
                games,
                contracts,
                TARGET_BLOCK,
                polling_interval=0.01,
                portal_version=3,
                cancel_token=token,
            )
    finally:
        timer.cancel()

    assert games.count("findLatestGames") >= 1


def test_no_polling_after_resolution(games, contracts):
    games.on(
        FACTORY,
        "findLatestGames",
        sequence([], [], [game(1, TARGET_BLOCK + 5)]),
    )
    token = CancelToken()

    output = wait_for_next_l2_output(
        games,
        contracts,
        TARGET_BLOCK,
        polling_interval=0.001,
        portal_version=3,
        cancel_token=token,
    )
    ticks = games.count("findLatestGames")

    canceller = threading.Thread(target=token.cancel)
    canceller.start()
    canceller.join()
    # Several polling intervals later, nothing has polled again.
    threading.Event().wait(0.05)

    assert output["output_index"] == 1
    assert token.cancelled
    assert games.count("findLatestGames") == ticks == 3


def test_reads_portal_version_when_not_given(games, contracts):
    games.on(PORTAL, "version", "3.10.0")
    games.on(FACTORY, "findLatestGames", [game(1, TARGET_BLOCK)])

    output = wait_for_next_l2_output(
        games, contracts, TARGET_BLOCK, cancel_token=RecordingToken()
    )

    assert output["l2_block_number"] == TARGET_BLOCK
    assert games.count("version") == 1


@pytest.fixture
def oracle(reader):
    """Legacy oracle: latest output covers block 1000 at t=10000, every 240s."""
    outputs = {5: (ROOT, 10_000, 1_000), 6: (ROOT, 10_360, 1_120)}
    reader.on(ORACLE, "latestOutputIndex", 5)
    reader.on(ORACLE, "L2_BLOCK_TIME", 2)
    reader.on(ORACLE, "SUBMISSION_INTERVAL", 120)
    reader.on(ORACLE, "getL2Output", lambda index: outputs[index])
    return reader


def test_legacy_waits_for_next_output_then_polls(oracle, contracts):
    oracle.on(
        ORACLE,
        "getL2OutputIndexAfter",
        sequence(ContractRevertError(RevertReason.OUTPUT_NOT_PROPOSED.value), 6),
    )
    token = RecordingToken()

    output = wait_for_next_l2_output(
        oracle,
        contracts,
        1_050,
        polling_interval=1.0,
        portal_version=2,
        interval_buffer=1.5,
        cancel_token=token,
        clock=lambda: 10_100,
    )

    assert output["output_index"] == 6
    assert output["l2_block_number"] == 1_120
    assert token.waits == [260, 1.0]


def test_legacy_other_revert_is_fatal(oracle, contracts):
    oracle.on(ORACLE, "getL2OutputIndexAfter", ContractRevertError("L2OutputOracle: boom"))
    token = RecordingToken()

    with pytest.raises(ContractRevertError):
        wait_for_next_l2_output(
            oracle,
            contracts,
            1_050,
            portal_version=2,
            cancel_token=token,
            clock=lambda: 10_100,
        )

    assert token.cancelled
