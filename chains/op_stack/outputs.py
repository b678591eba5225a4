"""
L2 output lookups on L1, for both portal generations.

Legacy (v2) chains commit outputs at a fixed cadence to the `L2OutputOracle`.
Fault-proof (v3) chains propose outputs as dispute games created through the
`DisputeGameFactory`; a game's `extraData` starts with the L2 block number its
root claim commits to.
"""

import math
import time
from typing import Callable, List, Optional, Sequence, cast

from eth_abi.abi import decode
from hexbytes import HexBytes

from utils.concurrency import settle_all
from utils.config import INTERVAL_BUFFER, LATEST_GAMES_LIMIT
from utils.logger import get_logger
from .contracts import ContractStateReader, OPStackContracts, require_contract
from .custom_errors import OutputNotProposedError
from .types import (
    GameProposal,
    GameSearchResult,
    LegacyProvenWithdrawalResponse,
    OutputProposal,
    ProtocolVersion,
    TimeToFinalize,
    TimeToNextOutput,
)
from .version import is_legacy

log = get_logger(__name__)

Clock = Callable[[], float]


def get_legacy_l2_output(
    reader: ContractStateReader, contracts: OPStackContracts, l2_block_number: int
) -> OutputProposal:
    """
    Fetch the first `L2OutputOracle` output at or after `l2_block_number`.

    Raises
    ------
    ContractRevertError
        With the oracle's "cannot get output for a block that has not been
        proposed" reason while no output covers the block yet.
    """
    oracle = require_contract(contracts.l2_output_oracle, "L2OutputOracle")

    output_index = reader.read(oracle, "getL2OutputIndexAfter", l2_block_number)
    output_root, timestamp, output_block_number = reader.read(
        oracle, "getL2Output", output_index
    )

    return {
        "output_index": output_index,
        "output_root": bytes(output_root),
        "timestamp": timestamp,
        "l2_block_number": output_block_number,
    }


def get_latest_games(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    limit: int = LATEST_GAMES_LIMIT,
) -> List[GameSearchResult]:
    """
    Fetch up to `limit` of the most recent dispute games of the portal's
    respected game type, searching backwards from the newest game.
    """
    factory = require_contract(contracts.dispute_game_factory, "DisputeGameFactory")
    portal = contracts.fault_proof_portal()

    game_count = reader.read(factory, "gameCount")
    game_type = reader.read(portal, "respectedGameType")

    latest_games = reader.read(
        factory,
        "findLatestGames",
        game_type,
        max(0, game_count - 1),
        min(limit, game_count),
    )

    return [
        {
            "index": game[0],
            "metadata": bytes(game[1]),
            "timestamp": game[2],
            "root_claim": bytes(game[3]),
            "extra_data": bytes(game[4]),
        }
        for game in latest_games
    ]


def decode_game_block_number(extra_data: bytes) -> int:
    """
    Decode the L2 block number a dispute game commits to from its `extraData`.

    Malformed data raises `eth_abi.exceptions.DecodingError`; it is never
    treated as "no match".
    """
    (block_number,) = decode(["uint256"], HexBytes(extra_data))

    return block_number


def find_output_game(
    games: Sequence[GameSearchResult], l2_block_number: int
) -> Optional[GameProposal]:
    """
    Return the game committing to the lowest L2 block that is still
    `>= l2_block_number`, or ``None`` if no game covers it.
    """
    match: Optional[GameProposal] = None

    for game in games:
        block_number = decode_game_block_number(game["extra_data"])

        if block_number < l2_block_number:
            continue

        if match is None or block_number < match["l2_block_number"]:
            match = {
                "output_index": game["index"],
                "output_root": game["root_claim"],
                "timestamp": game["timestamp"],
                "l2_block_number": block_number,
                "metadata": game["metadata"],
                "extra_data": game["extra_data"],
            }

    return match


def get_fault_proof_l2_output(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    l2_block_number: int,
    limit: int = LATEST_GAMES_LIMIT,
) -> GameProposal:
    """
    Fetch the dispute game proposal covering `l2_block_number`.

    Raises
    ------
    OutputNotProposedError
        If none of the latest `limit` games covers the block.
    """
    games = get_latest_games(reader, contracts, limit)
    match = find_output_game(games, l2_block_number)

    log.debug(
        "dispute_games_searched",
        games=len(games),
        l2_block_number=l2_block_number,
        matched=match is not None,
    )

    if match is None:
        raise OutputNotProposedError(l2_block_number)

    return match


def get_l2_output(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    l2_block_number: int,
    version: ProtocolVersion,
) -> OutputProposal:
    """Fetch the output proposal covering `l2_block_number` for the given portal version."""
    if is_legacy(version):
        return get_legacy_l2_output(reader, contracts, l2_block_number)

    return get_fault_proof_l2_output(reader, contracts, l2_block_number)


def get_time_to_next_l2_output(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    l2_block_number: int,
    interval_buffer: float = INTERVAL_BUFFER,
    clock: Clock = time.time,
) -> TimeToNextOutput:
    """
    Estimate how long until the `L2OutputOracle` publishes an output covering
    `l2_block_number` (legacy portals only).

    The estimate is derived from the oracle's submission interval (in L2
    blocks) times the L2 block time, padded by `interval_buffer`, and measured
    from the latest published output.

    Returns
    -------
    TimeToNextOutput
        * ``interval`` – seconds between two outputs, unbuffered
        * ``seconds`` – non-negative seconds until the covering output
        * ``timestamp`` – unix time of that output, ``None`` if already due
    """
    oracle = require_contract(contracts.l2_output_oracle, "L2OutputOracle")

    latest_output_index, block_time, submission_interval = (
        result.unwrap()
        for result in settle_all(
            lambda: reader.read(oracle, "latestOutputIndex"),
            lambda: reader.read(oracle, "L2_BLOCK_TIME"),
            lambda: reader.read(oracle, "SUBMISSION_INTERVAL"),
        )
    )

    _, latest_output_timestamp, latest_output_block = reader.read(
        oracle, "getL2Output", latest_output_index
    )

    interval = submission_interval * block_time
    interval_with_buffer = math.ceil(interval * interval_buffer)
    now = clock()

    if (
        interval_with_buffer <= 0
        or now < latest_output_timestamp
        or latest_output_block >= l2_block_number
    ):
        seconds = 0
    else:
        elapsed_blocks = l2_block_number - latest_output_block
        elapsed = math.ceil(now - latest_output_timestamp)
        seconds_to_next_output = interval_with_buffer - (
            elapsed % interval_with_buffer
        )

        if elapsed_blocks < submission_interval:
            seconds = seconds_to_next_output
        else:
            seconds = (
                elapsed_blocks // submission_interval
            ) * interval_with_buffer + seconds_to_next_output

    return {
        "interval": interval,
        "seconds": seconds,
        "timestamp": math.floor(now + seconds) if seconds > 0 else None,
    }


def get_legacy_proven_withdrawal(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    withdrawal_hash: bytes,
) -> LegacyProvenWithdrawalResponse:
    output_root, timestamp, l2_output_index = reader.read(
        contracts.legacy_portal(), "provenWithdrawals", withdrawal_hash
    )

    return {
        "output_root": bytes(output_root),
        "timestamp": timestamp,
        "l2_output_index": l2_output_index,
    }


def get_time_to_finalize(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    withdrawal_hash: bytes,
    clock: Clock = time.time,
) -> TimeToFinalize:
    """
    Seconds until a proven withdrawal leaves the finalization period of a
    legacy portal.

    Returns
    -------
    TimeToFinalize
        * ``period`` – the oracle's ``FINALIZATION_PERIOD_SECONDS``
        * ``seconds`` – remaining seconds, clamped at 0
        * ``timestamp`` – unix time the withdrawal becomes finalizable
    """
    oracle = require_contract(contracts.l2_output_oracle, "L2OutputOracle")

    proven, period = (
        result.unwrap()
        for result in settle_all(
            lambda: get_legacy_proven_withdrawal(reader, contracts, withdrawal_hash),
            lambda: reader.read(oracle, "FINALIZATION_PERIOD_SECONDS"),
        )
    )
    proven = cast(LegacyProvenWithdrawalResponse, proven)
    period = cast(int, period)

    seconds_since_proven = clock() - proven["timestamp"]
    seconds_to_finalize = period - seconds_since_proven

    return {
        "period": period,
        "seconds": math.floor(max(0, seconds_to_finalize)),
        "timestamp": proven["timestamp"] + period,
    }

