import time
from typing import Callable, Optional, Union

from utils.config import DEFAULT_POLLING_INTERVAL, INTERVAL_BUFFER
from utils.logger import get_logger
from utils.poll import CancelToken, poll
from .contracts import ContractStateReader, OPStackContracts
from .outputs import (
    find_output_game,
    get_latest_games,
    get_legacy_l2_output,
    get_time_to_next_l2_output,
)
from .reverts import is_output_not_proposed
from .types import OutputProposal, ProtocolVersion
from .version import is_legacy, resolve_portal_version

log = get_logger(__name__)


def wait_for_next_l2_output(
    reader: ContractStateReader,
    contracts: OPStackContracts,
    l2_block_number: int,
    polling_interval: float = DEFAULT_POLLING_INTERVAL,
    portal_version: Optional[Union[int, ProtocolVersion]] = None,
    interval_buffer: float = INTERVAL_BUFFER,
    cancel_token: Optional[CancelToken] = None,
    clock: Callable[[], float] = time.time,
) -> OutputProposal:
    """
    Block until an L2 output covering `l2_block_number` is proposed on L1.

    On legacy portals the first poll is delayed until the `L2OutputOracle` is
    expected to publish the covering output; each poll then asks the oracle
    for it. On fault-proof portals polling starts immediately and each poll
    searches the latest dispute games of the respected game type.

    Parameters
    ----------
    reader : ContractStateReader

    contracts : OPStackContracts

    l2_block_number : int
        L2 block the output must cover, typically the block of a withdrawal.

    polling_interval : float, optional
        Seconds between polls.

    portal_version : int | ProtocolVersion, optional
        Known portal version. Read from the portal when omitted.

    interval_buffer : float, optional
        Padding applied to the legacy submission interval.

    cancel_token : CancelToken, optional
        Cancel from another thread to stop waiting.

    Returns
    -------
    OutputProposal
        On fault-proof portals, a `GameProposal` carrying the game's
        decoded L2 block number.

    Raises
    ------
    PollingCancelledError
        If `cancel_token` is cancelled before an output is found.
    ContractReadError
        On any read failure other than "not proposed yet".
    """
    version = resolve_portal_version(reader, contracts.portal, portal_version)
    token = cancel_token or CancelToken()

    if is_legacy(version):
        initial_wait = get_time_to_next_l2_output(
            reader, contracts, l2_block_number, interval_buffer, clock
        )["seconds"]
    else:
        initial_wait = 0

    log.info(
        "waiting_for_l2_output",
        l2_block_number=l2_block_number,
        portal_version=str(version),
        initial_wait=initial_wait,
        polling_interval=polling_interval,
    )

    def legacy_tick() -> Optional[OutputProposal]:
        try:
            return get_legacy_l2_output(reader, contracts, l2_block_number)
        except Exception as e:
            if is_output_not_proposed(e):
                return None
            raise

    def fault_proof_tick() -> Optional[OutputProposal]:
        games = get_latest_games(reader, contracts)
        return find_output_game(games, l2_block_number)

    output = poll(
        legacy_tick if is_legacy(version) else fault_proof_tick,
        interval=polling_interval,
        initial_wait=initial_wait,
        token=token,
    )

    log.info(
        "l2_output_found",
        l2_block_number=l2_block_number,
        output_index=output["output_index"],
        output_block_number=output["l2_block_number"],
    )

    return output
