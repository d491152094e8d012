"""
Helpers for orchestrating asyncio tasks.

These utilities only support tasks, not more generic futures, coroutines,
or other awaitables: we not only wait for the tasks, but also cancel them.
"""
import asyncio
from typing import TYPE_CHECKING, Any, Collection, Coroutine, Optional, Set, Tuple

from edgeswift._cogs.helpers import typedefs

# A workaround for a difference in tasks at runtime and type-checking time.
# Otherwise, at runtime: TypeError: 'type' object is not subscriptable.
if TYPE_CHECKING:
    Future = asyncio.Future[Any]
    Task = asyncio.Task[Any]
else:
    Future = asyncio.Future
    Task = asyncio.Task


async def guard(
        coro: Coroutine[Any, Any, Any],
        name: str,
        *,
        finishable: bool = False,
        cancellable: bool = False,
        logger: Optional[typedefs.Logger] = None,
) -> None:
    """
    A guard for a background task that is started but never awaited/checked.

    Errors are always logged, as soon as they happen, not when (and if)
    the task is checked by its owner. Cancellations are logged unless the task
    is said to be cancellable; finishing is logged unless it is finishable.
    The errors are re-raised anyway, so that the owner can see them too.
    """
    capname = name.capitalize()
    try:
        await coro
    except asyncio.CancelledError:
        if logger is not None and not cancellable:
            logger.debug(f"{capname} is cancelled.")
        raise
    except Exception as e:
        if logger is not None:
            logger.exception(f"{capname} has failed: {e}")
        raise
    else:
        if logger is not None and not finishable:
            logger.warning(f"{capname} has finished unexpectedly.")


def create_guarded_task(
        coro: Coroutine[Any, Any, Any],
        name: str,
        *,
        finishable: bool = False,
        cancellable: bool = False,
        logger: Optional[typedefs.Logger] = None,
) -> Task:
    """
    Create a guarded background task. See :func:`guard` for explanation.

    This is only a shortcut for named task creation (name is used in 2 places).
    """
    return asyncio.create_task(
        name=name,
        coro=guard(
            name=name,
            coro=coro,
            finishable=finishable,
            cancellable=cancellable,
            logger=logger))


async def wait(
        tasks: Collection[Task],
        *,
        timeout: Optional[float] = None,
        return_when: Any = asyncio.ALL_COMPLETED,
) -> Tuple[Set[Task], Set[Task]]:
    """
    A safer version of :func:`asyncio.wait` -- does not fail on an empty list.
    """
    if not tasks:
        return set(), set()
    done, pending = await asyncio.wait(tasks, timeout=timeout, return_when=return_when)
    return done, pending


async def stop(
        tasks: Collection[Task],
        *,
        title: str,
        logger: Optional[typedefs.Logger] = None,
) -> Tuple[Set[Task], Set[Task]]:
    """
    Cancel the tasks and wait for them to finish.

    The stopping itself does not have timeouts. It always ends either with
    the tasks stopped/exited, or with the stopping routine itself cancelled.
    In the latter case, the remaining tasks are left as they are.
    """
    captitle = title.capitalize()
    if not tasks:
        if logger is not None:
            logger.debug(f"{captitle} tasks stopping is skipped: no tasks given.")
        return set(), set()

    for task in tasks:
        task.cancel()

    try:
        done, pending = await wait(tasks)
    except asyncio.CancelledError:
        pending = {task for task in tasks if not task.done()}
        if logger is not None:
            logger.debug(f"{captitle} tasks are not stopped: double-cancelling; "
                         f"tasks left: {pending!r}")
        raise
    else:
        if logger is not None:
            logger.debug(f"{captitle} tasks are stopped; tasks left: {pending!r}")
        return done, pending
