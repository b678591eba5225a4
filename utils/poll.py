"""
Bounded polling with a terminal cancellation point.

`poll` runs a tick function at a fixed interval until the tick yields a
result, raises, or the `CancelToken` is cancelled from elsewhere. The token is
the only state shared between ticks: it is checked at the top of every tick,
cancelled on the way out, and never reset.
"""

import threading
from typing import Callable, Optional, TypeVar

from chains.op_stack.custom_errors import PollingCancelledError
from .logger import get_logger

T = TypeVar("T")

log = get_logger(__name__)


class CancelToken:
    """One-shot cancellation flag doubling as a cancellable timer."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """
        Sleep up to `timeout` seconds, waking early on cancellation.

        Returns ``True`` if the token is cancelled.
        """
        return self._event.wait(timeout)


def poll(
    tick: Callable[[], Optional[T]],
    interval: float,
    initial_wait: float = 0.0,
    token: Optional[CancelToken] = None,
) -> T:
    """
    Call `tick` every `interval` seconds until it returns a non-``None`` value.

    Parameters
    ----------
    tick : Callable[[], Optional[T]]
        One polling attempt. ``None`` means "not yet, keep polling"; any
        exception is fatal.

    interval : float
        Seconds between the end of one tick and the start of the next.

    initial_wait : float, optional
        Seconds to wait before the first tick.

    token : CancelToken, optional
        Shared cancellation token. Cancelling it from another thread stops the
        loop at the next tick boundary.

    Returns
    -------
    T
        The first non-``None`` tick result. The token is cancelled before
        returning or raising, so no tick runs after resolution.

    Raises
    ------
    PollingCancelledError
        If the token was cancelled before any tick produced a result.
    """
    if interval < 0 or initial_wait < 0:
        raise ValueError("`interval` and `initial_wait` must be non-negative")

    token = token or CancelToken()
    attempt = 0

    if initial_wait > 0:
        log.debug("poll_initial_wait", seconds=initial_wait)
        token.wait(initial_wait)

    while not token.cancelled:
        attempt += 1
        log.debug("poll_tick", attempt=attempt)

        try:
            result = tick()
        except Exception:
            token.cancel()
            raise

        if result is not None:
            token.cancel()
            log.debug("poll_resolved", attempt=attempt)
            return result

        if token.wait(interval):
            break

    raise PollingCancelledError(f"Polling cancelled after {attempt} attempt(s)")
