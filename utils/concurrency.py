from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Generic, List, NamedTuple, Optional, TypeVar

T = TypeVar("T")


class Settled(NamedTuple, Generic[T]):
    """
    Outcome of one branch of `settle_all`: exactly one of `value` or `error`
    is meaningful, as told by `ok`.
    """

    value: Optional[T]
    error: Optional[BaseException]

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, re-raising the branch's error if it failed."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def settle_all(*calls: Callable[[], Any]) -> List[Settled[Any]]:
    """
    Run every call concurrently and wait for all of them to finish.

    Failures never short-circuit the others: each branch is captured as a
    `Settled` and the list is returned in the order the calls were given,
    regardless of completion order.
    """
    if not calls:
        return []

    with ThreadPoolExecutor(max_workers=len(calls)) as executor:
        futures = [executor.submit(call) for call in calls]
        wait(futures)

    settled: List[Settled[Any]] = []
    for future in futures:
        error = future.exception()
        if error is None:
            settled.append(Settled(future.result(), None))
        else:
            settled.append(Settled(None, error))

    return settled
