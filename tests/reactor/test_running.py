import asyncio
import dataclasses
import signal
import threading
from unittest.mock import MagicMock

import pytest

from edgeswift._cogs.structs.credentials import ConnectionInfo, LoginError
from edgeswift._core.reactor import controlling
from edgeswift._core.reactor.running import _stop_flag_checker, run, serve
from edgeswift.testing import InMemoryConvergence, ScriptedWatchTransport


@pytest.fixture()
def controllers(mocker):
    """ Make the controllers with the in-memory doubles instead of the cluster clients. """
    real_cls = controlling.SwiftController
    made = []

    def make(config, **kwargs):
        controller = real_cls(config, transport=ScriptedWatchTransport(),
                              convergence=InMemoryConvergence(), **kwargs)
        made.append(controller)
        return controller

    mocker.patch.object(controlling, 'SwiftController', side_effect=make)
    return made


@pytest.fixture()
def login(mocker):
    return mocker.patch('edgeswift._cogs.clients.piggybacking.login',
                        return_value=ConnectionInfo(server='https://fake-host'))


async def test_serving_until_the_stop_flag(config, settings, controllers, login):
    config = dataclasses.replace(config, context=MagicMock())
    stop_flag = asyncio.Event()
    stop_flag.set()

    await asyncio.wait_for(serve(config=config, namespace='ns1', settings=settings,
                                 stop_flag=stop_flag), timeout=1)

    assert len(controllers) == 1
    assert controllers[0].transport.subscriptions[0][1] == 'ns1'
    assert not login.called


async def test_serving_logs_in_without_a_context(config, settings, controllers, login):
    stop_flag = asyncio.Event()
    stop_flag.set()

    await asyncio.wait_for(serve(config=config, namespace=None, settings=settings,
                                 stop_flag=stop_flag), timeout=1)

    assert login.called
    assert controllers[0].config.context is not None
    assert controllers[0].config.context.server == 'https://fake-host'
    assert controllers[0].config.context.session.closed


async def test_login_errors_escalate(config, settings, controllers, mocker):
    mocker.patch('edgeswift._cogs.clients.piggybacking.login', side_effect=LoginError("boo"))

    with pytest.raises(LoginError):
        await serve(config=config, namespace=None, settings=settings, stop_flag=asyncio.Event())
    assert controllers == []


async def test_subscription_failures_escalate(config, settings, mocker):
    real_cls = controlling.SwiftController
    transport = ScriptedWatchTransport(setup_error=RuntimeError("no watching"))
    mocker.patch.object(controlling, 'SwiftController', side_effect=lambda config, **kwargs: (
        real_cls(config, transport=transport, convergence=InMemoryConvergence(), **kwargs)))
    config = dataclasses.replace(config, context=MagicMock())

    with pytest.raises(controlling.SubscriptionSetupFailure):
        await serve(config=config, namespace=None, settings=settings, stop_flag=asyncio.Event())


def test_running_synchronously(config, settings, controllers, login):
    stop_flag = threading.Event()
    stop_flag.set()
    run(config=config, namespace='ns1', settings=settings, stop_flag=stop_flag)
    assert len(controllers) == 1


async def test_stop_flags_raise_the_signal_flag(assert_logs):
    signal_flag = asyncio.get_running_loop().create_future()
    stop_flag = asyncio.Event()
    stop_flag.set()

    await asyncio.wait_for(_stop_flag_checker(signal_flag, stop_flag), timeout=1)

    assert signal_flag.done()
    assert_logs([r"Stop-flag is raised. Controller is stopping."])


async def test_signals_are_reported(assert_logs):
    signal_flag = asyncio.get_running_loop().create_future()
    signal_flag.set_result(signal.SIGTERM)

    await asyncio.wait_for(_stop_flag_checker(signal_flag, None), timeout=1)

    assert_logs([r"Signal SIGTERM is received. Controller is stopping."])
