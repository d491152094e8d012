import json
import logging
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from edgeswift._cogs.clients.auth import APIContext
from edgeswift._cogs.configs.configuration import ControllerConfig, ControllerSettings
from edgeswift._cogs.structs.credentials import ConnectionInfo
from edgeswift._cogs.structs.swifts import OwnerReference
from edgeswift.testing import InMemoryConvergence, ScriptedWatchTransport


def pytest_configure(config):
    # Warnings from the testing tools out of our control should not fail the tests.
    config.addinivalue_line('filterwarnings', 'ignore:Setting custom:DeprecationWarning:aiohttp')


@pytest.fixture()
def settings():
    settings = ControllerSettings()
    settings.networking.error_backoffs = []  # no retries unless explicitly tested
    settings.watching.reconnect_backoff = 0
    return settings


@pytest.fixture()
def owner_ref():
    return OwnerReference(
        api_version='edgefs.rook.io/v1alpha1',
        kind='Cluster',
        name='rook-edgefs',
        uid='uid-of-the-cluster',
    )


@pytest.fixture()
def config(owner_ref):
    return ControllerConfig(
        image='edgefs/edgefs:test',
        owner_ref=owner_ref,
    )


@pytest.fixture()
def convergence():
    return InMemoryConvergence()


@pytest.fixture()
def transport():
    return ScriptedWatchTransport()


@pytest.fixture()
def make_swift():
    """ A factory of the raw SWIFT payloads, as they come from the API. """
    def maker(name='swift1', namespace='rook-edgefs', spec=None, *, uid=None, rv='1'):
        return {
            'apiVersion': 'edgefs.rook.io/v1alpha1',
            'kind': 'SWIFT',
            'metadata': {
                'name': name,
                'namespace': namespace,
                'uid': uid if uid is not None else f'uid-of-{name}',
                'resourceVersion': rv,
            },
            'spec': dict(spec) if spec is not None else {},
        }
    return maker


#
# Mocks for Kubernetes API clients (aiohttp via aresponses).
#
# 1. We do not test the library (aiohttp), we test the layers on top of it,
#    so everything low-level is mocked and assumed to be functional.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#

@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all aiohttp/aresponses tests. """
    return 'fake-host'


@pytest.fixture()
async def context(hostname):
    """ The API context pointing to the fake host; closed after the test. """
    info = ConnectionInfo(server=f'https://{hostname}')
    async with APIContext(info) as context:
        yield context


@pytest.fixture()
def resp_mocker(aresponses):
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which return a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effects).

    The difference from passing the responses directly to `aresponses.add`
    is that it is possible to assert on whether the response was handled
    by that callback at all (i.e. HTTP URL & method matched), especially
    if there are multiple responses registered. The request payloads
    are preserved in the mock's ``payloads`` list.

    Sample usage::

        def test_me(resp_mocker):
            response = aiohttp.web.json_response({'a': 'b'})
            callback = resp_mocker(return_value=response)
            aresponses.add(hostname, '/path/', 'get', callback)
            do_something()
            assert callback.called
            assert callback.call_count == 1
    """
    def resp_maker(*args, **kwargs):
        actual_response = MagicMock(*args, **kwargs)
        payloads = []

        async def resp_mock_effect(request):

            # The request's content can be read inside of the handler only. We preserve
            # the data into a conventional list, so that they could be asserted later.
            text = await request.text()
            try:
                payloads.append(json.loads(text))
            except json.JSONDecodeError:
                payloads.append(text)

            # Get a response/error as it was intended (via return_value/side_effect).
            return actual_response()

        mock = AsyncMock(side_effect=resp_mock_effect)
        mock.payloads = payloads
        return mock
    return resp_maker


#
# Helpers for the logging checks.
#

@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    caplog.set_level(logging.DEBUG)

    def assert_logs_fn(patterns, prohibited=[], strict=False):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            # The expected pattern is at position 0.
            # Looking-ahead: if one of the following patterns matches, while the
            # 0th does not, then the log message is missing, and we fail the test.
            for idx, pattern in enumerate(remaining_patterns):
                m = re.search(pattern, message)
                if m:
                    if idx == 0:
                        remaining_patterns[:1] = []
                        break  # out of `remaining_patterns` cycle
                    else:
                        skipped_patterns = remaining_patterns[:idx]
                        raise AssertionError(f"Few patterns were skipped: {skipped_patterns!r}")
                elif strict:
                    raise AssertionError(f"Unexpected log message: {message!r}")

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                m = re.search(pattern, message)
                if m:
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn
