# melbox/services/feed/optimistic.py
from dataclasses import dataclass
from typing import Any, Callable, Optional

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


def _nothing() -> None:
    return None


@dataclass
class OptimisticCommand:
    """
    One optimistic mutation of the feed.

    capture()                 -> the "before" values of exactly the fields this mutation touches
    apply(before)             -> change local state as if the remote call had succeeded
    remote(store)             -> the store call; its return value is what the mutation returns
    refetch(store, result)    -> optional store read after a successful remote call
    reconcile(before, result) -> optional, adjust local state to the authoritative result
                                 (the refetch value when there is one)
    revert(before)            -> put back the captured fields after a failed remote call

    capture/apply/revert/reconcile run under the controller's lock, remote and refetch never do.
    The store passed in is the one bound when the mutation started.
    """
    name: str
    apply: Callable[[Any], None]
    remote: Callable[[Any], Any]
    revert: Callable[[Any], None]
    capture: Callable[[], Any] = _nothing
    refetch: Optional[Callable[[Any, Any], Any]] = None
    reconcile: Optional[Callable[[Any, Any], None]] = None
    failure_message: str = GENERIC_FAILURE_MESSAGE
