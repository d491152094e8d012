"""
Watching and streaming watch-events.

The watch-stream is an infinite sequence of raw events: first, the objects
are listed, and a bookmark is sent to mark the end of the listing;
then, the changes are watched since the list's resource version.

If a watch request is disconnected (e.g. by the server-side timeout),
it is restarted from the latest seen resource version. If the resource
version is too old ("410 Gone"), the whole cycle is restarted with listing.

The stream ends only when the stopper is done (or on unrecoverable errors).
The stopper's "done" callback closes the current streaming response,
so there is no need to wait for the next event or for the timeout to stop.
"""
import asyncio
import enum
import logging
from typing import AsyncIterator, Dict, Optional, Union, cast

import aiohttp

from edgeswift._cogs.aiokits import aiotasks
from edgeswift._cogs.clients import api, auth, errors, fetching
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.structs import bodies, references

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS_CODE = 429
DEFAULT_RETRY_DELAY_SECONDS = 1


class WatchingError(Exception):
    """
    Raised when an unexpected error happens in the watch-stream API.
    """


class Bookmark(enum.Enum):
    """ Special marks sent in the stream among raw events. """
    LISTED = enum.auto()  # the listing is over, now streaming.


async def infinite_watch(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        stopper: aiotasks.Future,
        _iterations: Optional[int] = None,  # used in tests/mocks/fixtures
) -> AsyncIterator[Union[Bookmark, bodies.RawEvent]]:
    """
    Stream the watch-events infinitely, until stopped.

    This routine is extracted because it is difficult to test infinite loops.
    It is made as simple as possible, and is assumed to work without testing.

    If a watcher's stream fails, a new one is recreated, and the stream continues.
    It only exits with unrecoverable exceptions or when the stopper is done.
    """
    where = f'in {namespace!r}' if namespace is not None else 'cluster-wide'
    logger.debug(f"Starting the watch-stream for {resource} {where}.")
    try:
        while not stopper.done() and (_iterations is None or _iterations > 0):
            _iterations = None if _iterations is None else _iterations - 1
            stream = continuous_watch(
                context=context,
                settings=settings,
                resource=resource,
                namespace=namespace,
                stopper=stopper,
            )
            try:
                async for raw_event in stream:
                    yield raw_event
            except errors.APIClientError as ex:
                if ex.code != HTTP_TOO_MANY_REQUESTS_CODE:
                    raise

                retry_after = ex.details.get("retryAfterSeconds") if ex.details else None
                retry_wait = retry_after or DEFAULT_RETRY_DELAY_SECONDS
                logger.warning(
                    f"Receiving `too many requests` error from server, will retry after "
                    f"{retry_wait} seconds. Error details: {ex}"
                )
                await asyncio.wait([stopper], timeout=retry_wait)
            await asyncio.wait([stopper], timeout=settings.watching.reconnect_backoff)
    finally:
        logger.debug(f"Stopping the watch-stream for {resource} {where}.")


async def continuous_watch(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        stopper: aiotasks.Future,
) -> AsyncIterator[Union[Bookmark, bodies.RawEvent]]:

    # First, list the resources regularly, and get the list's resource version.
    # Simulate the events with type "None" event - used in detection of re-listed objects.
    try:
        objs, resource_version = await fetching.list_objs(
            context=context,
            settings=settings,
            resource=resource,
            namespace=namespace,
            logger=logger,
        )
        for obj in objs:
            yield {'type': None, 'object': obj}

    except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError, asyncio.TimeoutError):
        return

    # Notify the watcher that the initial listing is over, even if there was nothing yielded.
    yield Bookmark.LISTED

    # Repeat through disconnects of the watch as long as the resource version is valid (no errors).
    # The individual watching API calls are disconnected by timeout even if the stream is fine.
    while not stopper.done():

        # Then, watch the resources starting from the list's resource version.
        stream = watch_objs(
            context=context,
            settings=settings,
            resource=resource,
            namespace=namespace,
            since=resource_version,
            stopper=stopper,
        )
        async for raw_input in stream:
            raw_type = raw_input['type']
            raw_object = raw_input['object']

            # "410 Gone" is for the "resource version too old" error, we must restart watching.
            # The resource versions are lost by k8s after a few minutes (5 as per the official doc).
            # The error occurs when there is nothing happening for a few minutes. This is normal.
            if raw_type == 'ERROR' and cast(bodies.RawError, raw_object).get('code') == 410:
                where = f'in {namespace!r}' if namespace is not None else 'cluster-wide'
                logger.debug(f"Restarting the watch-stream for {resource} {where}.")
                return  # out of the regular stream, to the infinite stream.

            # Other watch errors should be fatal for the controller.
            if raw_type == 'ERROR':
                raise WatchingError(f"Error in the watch-stream: {raw_object}")

            # Ensure that the event is something we understand and can handle.
            if raw_type not in ['ADDED', 'MODIFIED', 'DELETED']:
                logger.warning(f"Ignoring an unsupported event type: {raw_input!r}")
                continue

            # Keep the latest seen resource version for continuation of the stream on disconnects.
            body = cast(bodies.RawBody, raw_object)
            resource_version = body.get('metadata', {}).get('resourceVersion', resource_version)

            # Yield normal events to the consumer. Errors are already filtered out.
            yield cast(bodies.RawEvent, raw_input)


async def watch_objs(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        since: Optional[str] = None,
        stopper: aiotasks.Future,
) -> AsyncIterator[bodies.RawInput]:
    """
    Watch objects of a specific resource type.

    The cluster-scoped call is used in two cases:

    * The resource itself is cluster-scoped, and namespacing makes not sense.
    * The controller serves all namespaces for the namespaced custom resource.

    Otherwise, the namespace-scoped call is used:

    * The resource is namespace-scoped AND controller is namespaced-restricted.
    """
    params: Dict[str, str] = {}
    params['watch'] = 'true'
    if since is not None:
        params['resourceVersion'] = since
    if settings.watching.server_timeout is not None:
        params['timeoutSeconds'] = str(settings.watching.server_timeout)

    connect_timeout = (
        settings.watching.connect_timeout if settings.watching.connect_timeout is not None else
        settings.networking.connect_timeout if settings.networking.connect_timeout is not None else
        settings.networking.request_timeout
    )

    # Stream the parsed events from the response until it is closed server-side,
    # or until it is closed client-side by the stopper's callbacks.
    try:
        async for raw_input in api.stream(
            url=resource.get_url(namespace=namespace, params=params),
            context=context,
            settings=settings,
            stopper=stopper,
            timeout=aiohttp.ClientTimeout(
                total=settings.watching.client_timeout,
                sock_connect=connect_timeout,
            ),
            logger=logger,
        ):
            yield raw_input

    except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError, asyncio.TimeoutError):
        pass
