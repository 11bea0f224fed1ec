"""
Transactional list mutation: optimistic apply, remote call, then commit or rollback.
"""

from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar

R = TypeVar("R")


class Snapshottable(Protocol):
    def snapshot(self) -> Any:
        """Copy of every list the UI can see."""
        ...

    def restore(self, snapshot: Any) -> None:
        """Put back a copy taken by snapshot()."""
        ...


async def transactional_mutation(
    state: Snapshottable,
    apply: Callable[[], None],
    remote_call: Callable[[], Awaitable[R]],
    on_success: Optional[Callable[[R], Awaitable[None]]] = None,
    on_failure: Optional[Callable[[Exception], None]] = None,
) -> R:
    """
    Run one optimistic mutation against ``state``.

    The in-memory change made by ``apply`` is visible before ``remote_call``
    is awaited. If the remote call raises, ``state`` is restored to the exact
    pre-mutation snapshot, ``on_failure`` is told, and the error propagates.
    A state whose ``closed`` flag is set by then is left untouched.
    On success ``on_success`` reconciles (cache invalidation + refetch).

    Args:
        state: Holder of the visible lists
        apply: Synchronous optimistic update
        remote_call: The remote operation
        on_success: Awaited with the remote result
        on_failure: Called with the error after the rollback

    Returns:
        Whatever remote_call returned
    """
    snapshot = state.snapshot()
    apply()
    try:
        result = await remote_call()
    except Exception as e:
        if not getattr(state, "closed", False):
            state.restore(snapshot)
        if on_failure is not None:
            on_failure(e)
        raise
    if on_success is not None:
        await on_success(result)
    return result
