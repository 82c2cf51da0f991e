"""iter_coroutine - drive non-suspending store coroutines from plain threads."""

from __future__ import annotations

import typing

_T = typing.TypeVar("_T")


def iter_coroutine(coro: typing.Coroutine[None, None, _T]) -> _T:
    """
    Run a coroutine to completion without an event loop.

    Blocking object stores (boto3, the blocking HTTP transport, the in-memory
    store) expose ``async def`` methods that never await anything that
    suspends. The threaded runtime calls them on worker threads through this
    helper, so one retry loop serves both runtimes.

    Args:
        coro: A coroutine that completes without suspending.

    Returns:
        The return value of the coroutine.

    Raises:
        RuntimeError: If the coroutine tries to suspend.
    """
    try:
        coro.send(None)
    except StopIteration as ex:
        return ex.value  # type: ignore [no-any-return]
    else:
        raise RuntimeError(
            f"coroutine {coro!r} suspended; use an async object store with the async runtime"
        )
    finally:
        coro.close()


__all__ = ["iter_coroutine"]
