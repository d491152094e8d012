"""
Cancellation flags of various kinds, as passed by the embedding code.

Non-asyncio primitives are generally not our worry,
but we support them for convenience: e.g. when the controller is started
in a thread of a bigger application, which stops it from another thread.
"""
import asyncio
import concurrent.futures
import threading
from typing import Any, Optional, Union

from edgeswift._cogs.aiokits import aiotasks

Flag = Union[aiotasks.Future, asyncio.Event, concurrent.futures.Future, threading.Event]


async def wait_flag(
        flag: Optional[Flag],
) -> Any:
    """
    Wait for a flag to be raised.

    A missing flag (``None``) is never raised: the waiting goes forever,
    until the waiting task is cancelled.
    """
    if flag is None:
        await asyncio.Event().wait()
    elif isinstance(flag, asyncio.Future):
        return await flag
    elif isinstance(flag, asyncio.Event):
        return await flag.wait()
    elif isinstance(flag, concurrent.futures.Future):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flag.result)
    elif isinstance(flag, threading.Event):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flag.wait)
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")
