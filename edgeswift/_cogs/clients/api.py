import asyncio
import collections.abc
import itertools
import json
from typing import Any, AsyncIterator, Mapping, Optional

import aiohttp

from edgeswift._cogs.aiokits import aiotasks
from edgeswift._cogs.clients import auth, errors
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs


async def request(
        method: str,
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    """
    Make a request, and retry on the connection errors & server-side errors.

    The client-side errors (HTTP 4xx) are raised immediately: repeating
    the same request will not help. Neither will it help for the handlers,
    so the retries are only for the transient networking issues.
    """
    if '://' not in url:
        url = context.server.rstrip('/') + '/' + url.lstrip('/')

    if timeout is None:
        timeout = aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        )

    backoffs = settings.networking.error_backoffs
    backoffs = backoffs if isinstance(backoffs, collections.abc.Iterable) else [backoffs]
    count = len(backoffs) + 1 if isinstance(backoffs, collections.abc.Sized) else None
    backoff: Optional[float]
    for retry, backoff in enumerate(itertools.chain(backoffs, [None]), start=1):
        idx = f"#{retry}/{count}" if count is not None else f"#{retry}"
        what = f"{method.upper()} {url}"
        try:
            if retry > 1:
                logger.debug(f"Request attempt {idx}: {what}")

            response = await context.session.request(
                method=method,
                url=url,
                json=payload,
                headers=headers,
                timeout=timeout,
            )
            await errors.check_response(response)  # but do not parse it!

        except (aiohttp.ClientConnectionError, errors.APIServerError, asyncio.TimeoutError) as e:
            if backoff is None:  # i.e. the last or the only attempt.
                logger.error(f"Request attempt {idx} failed; escalating: {what} -> {e!r}")
                raise
            else:
                logger.error(f"Request attempt {idx} failed; will retry: {what} -> {e!r}")
                await asyncio.sleep(backoff)  # non-awakable! but still cancellable.
        else:
            if retry > 1:
                logger.debug(f"Request attempt {idx} succeeded: {what}")
            return response

    raise RuntimeError("Broken retryable routine.")  # impossible, but needed for type-checking.


async def get(
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='get',
        url=url,
        context=context,
        settings=settings,
        logger=logger,
    )
    async with response:
        return await response.json()


async def post(
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        payload: Optional[object] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='post',
        url=url,
        payload=payload,
        context=context,
        settings=settings,
        logger=logger,
    )
    async with response:
        return await response.json()


async def patch(
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='patch',
        url=url,
        payload=payload,
        headers=headers,
        context=context,
        settings=settings,
        logger=logger,
    )
    async with response:
        return await response.json()


async def delete(
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        payload: Optional[object] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='delete',
        url=url,
        payload=payload,
        context=context,
        settings=settings,
        logger=logger,
    )
    async with response:
        return await response.json()


async def stream(
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        stopper: Optional[aiotasks.Future] = None,
        logger: typedefs.Logger,
) -> AsyncIterator[Any]:
    """
    Stream the JSON-lines from the URL until the stream ends or is stopped.

    Once the stopper is done, the response is closed, so the stream ends
    as soon as the currently yielded line is consumed by the caller.
    """
    response = await request(
        method='get',
        url=url,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    response_close_callback = lambda _: response.close()  # to remove the positional arg.
    if stopper is not None:
        stopper.add_done_callback(response_close_callback)
    try:
        async with response:
            async for line in iter_jsonlines(response.content):
                yield json.loads(line.decode('utf-8'))
    except aiohttp.ClientConnectionError:
        if stopper is not None and stopper.done():
            pass
        else:
            raise
    finally:
        if stopper is not None:
            stopper.remove_done_callback(response_close_callback)


async def iter_jsonlines(
        content: aiohttp.StreamReader,
        chunk_size: int = 1024 * 1024,
) -> AsyncIterator[bytes]:
    """
    Iterate line by line over the response's content.

    This is an equivalent of ``async for line in response.content``,
    except that the aiohttp's line iteration fails if the accumulated buffer
    length is above 2**17 bytes (128 KB), while the K8s objects can be
    much longer, up to MBs in length (e.g. with big annotations).
    """

    # Minimize the memory footprint by keeping at most 2 copies of a yielded line in memory
    # (in the buffer and as a yielded value), and at most 1 copy of other lines (in the buffer).
    buffer = b''
    async for data in content.iter_chunked(chunk_size):
        buffer += data
        del data

        start = 0
        index = buffer.find(b'\n', start)
        while index >= 0:
            line = buffer[start:index]
            if line:
                yield line
            del line
            start = index + 1
            index = buffer.find(b'\n', start)

        if start > 0:
            buffer = buffer[start:]

    if buffer:
        yield buffer
