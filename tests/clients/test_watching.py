import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from edgeswift._cogs.clients.errors import APIClientError, APIForbiddenError
from edgeswift._cogs.clients.watching import Bookmark, WatchingError, \
                                             continuous_watch, infinite_watch
from edgeswift._cogs.structs.references import SWIFTS


@pytest.fixture()
async def stopper():
    return asyncio.get_running_loop().create_future()


@pytest.fixture()
def list_objs(mocker):
    return mocker.patch('edgeswift._cogs.clients.fetching.list_objs',
                        AsyncMock(return_value=([], '100')))


@pytest.fixture()
def watch_objs(mocker, stopper):
    """ Scripted watch-streams, one per call; the stopper is set when they are over. """
    streams = []
    calls = []

    def watch_objs(**kwargs):
        calls.append(kwargs)

        async def stream():
            events = streams.pop(0) if streams else []
            for event in events:
                yield event
            if not streams and not stopper.done():
                stopper.set_result(None)
        return stream()

    mocker.patch('edgeswift._cogs.clients.watching.watch_objs', watch_objs)
    return MagicMock(streams=streams, calls=calls)


async def _collect(stream):
    return [event async for event in stream]


async def test_listing_is_followed_by_a_bookmark(settings, list_objs, watch_objs, stopper):
    list_objs.return_value = ([{'metadata': {'name': 's1'}}], '100')
    events = await _collect(continuous_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None, stopper=stopper))

    assert events == [
        {'type': None, 'object': {'metadata': {'name': 's1'}}},
        Bookmark.LISTED,
    ]


async def test_watching_starts_from_the_listed_version(settings, list_objs, watch_objs, stopper):
    watch_objs.streams.append([
        {'type': 'ADDED', 'object': {'metadata': {'name': 's1', 'resourceVersion': '101'}}},
    ])
    events = await _collect(continuous_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace='ns1', stopper=stopper))

    assert events == [
        Bookmark.LISTED,
        {'type': 'ADDED', 'object': {'metadata': {'name': 's1', 'resourceVersion': '101'}}},
    ]
    assert watch_objs.calls[0]['since'] == '100'
    assert watch_objs.calls[0]['namespace'] == 'ns1'


async def test_reconnects_continue_from_the_last_seen_version(
        settings, list_objs, watch_objs, stopper):
    watch_objs.streams.append([
        {'type': 'ADDED', 'object': {'metadata': {'name': 's1', 'resourceVersion': '101'}}},
    ])
    watch_objs.streams.append([
        {'type': 'MODIFIED', 'object': {'metadata': {'name': 's1', 'resourceVersion': '102'}}},
    ])
    events = await _collect(continuous_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None, stopper=stopper))

    assert len(events) == 3
    assert [call['since'] for call in watch_objs.calls] == ['100', '101']


async def test_gone_versions_restart_the_listing(settings, list_objs, watch_objs, stopper):
    watch_objs.streams.append([
        {'type': 'ERROR', 'object': {'code': 410}},
        {'type': 'ADDED', 'object': {'metadata': {'name': 'never-seen'}}},
    ])
    watch_objs.streams.append([])  # keeps the stopper unset
    events = await _collect(continuous_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None, stopper=stopper))

    assert events == [Bookmark.LISTED]
    assert len(watch_objs.calls) == 1


async def test_other_errors_are_fatal(settings, list_objs, watch_objs, stopper):
    watch_objs.streams.append([
        {'type': 'ERROR', 'object': {'code': 500, 'message': 'boo'}},
    ])
    with pytest.raises(WatchingError):
        await _collect(continuous_watch(
            context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None,
            stopper=stopper))


async def test_unsupported_event_types_are_ignored(
        settings, list_objs, watch_objs, stopper, assert_logs):
    watch_objs.streams.append([
        {'type': 'UNKNOWN', 'object': {}},
    ])
    events = await _collect(continuous_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None, stopper=stopper))

    assert events == [Bookmark.LISTED]
    assert_logs([r"Ignoring an unsupported event type"])


async def test_listing_disconnects_end_the_cycle(settings, list_objs, watch_objs, stopper):
    list_objs.side_effect = aiohttp.ClientConnectionError()
    events = await _collect(continuous_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None, stopper=stopper))

    assert events == []
    assert watch_objs.calls == []


async def test_infinite_watch_restarts_the_cycles(settings, list_objs, watch_objs, stopper):
    watch_objs.streams.append([{'type': 'ERROR', 'object': {'code': 410}}])
    watch_objs.streams.append([{'type': 'ERROR', 'object': {'code': 410}}])
    events = await _collect(infinite_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None,
        stopper=stopper, _iterations=2))

    assert events == [Bookmark.LISTED, Bookmark.LISTED]
    assert list_objs.await_count == 2


async def test_infinite_watch_exits_when_stopped(settings, list_objs, watch_objs, stopper):
    stopper.set_result(None)
    events = await _collect(infinite_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None, stopper=stopper))

    assert events == []
    assert list_objs.await_count == 0


async def test_infinite_watch_waits_on_too_many_requests(
        settings, list_objs, watch_objs, stopper, assert_logs):
    error = APIClientError({'kind': 'Status', 'code': 429, 'message': 'slow down',
                            'details': {'retryAfterSeconds': 0.01}}, status=429)
    list_objs.side_effect = [error, ([], '100')]
    events = await _collect(infinite_watch(
        context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None,
        stopper=stopper, _iterations=2))

    assert events == [Bookmark.LISTED]
    assert_logs([r"Receiving `too many requests` error from server, will retry after 0.01"])


async def test_infinite_watch_escalates_client_errors(settings, list_objs, watch_objs, stopper):
    list_objs.side_effect = APIForbiddenError(None, status=403)
    with pytest.raises(APIForbiddenError):
        await _collect(infinite_watch(
            context=MagicMock(), settings=settings, resource=SWIFTS, namespace=None,
            stopper=stopper))
