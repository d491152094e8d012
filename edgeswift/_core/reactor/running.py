"""
Running the controller as a standalone process (e.g. from the CLI).

The process logs in to the cluster, subscribes to the resource's events,
and dispatches them until interrupted with SIGINT/SIGTERM or until
the externally provided stop-flag is raised (e.g. in tests).
"""
import asyncio
import dataclasses
import logging
import signal
import threading
from typing import Optional

from edgeswift._cogs.aiokits import aioflags, aiotasks
from edgeswift._cogs.clients import auth, piggybacking
from edgeswift._cogs.configs import configuration
from edgeswift._core.reactor import controlling

logger = logging.getLogger(__name__)


def run(
        *,
        config: configuration.ControllerConfig,
        namespace: Optional[str] = None,
        settings: Optional[configuration.ControllerSettings] = None,
        stop_flag: Optional[aioflags.Flag] = None,
) -> None:
    """
    Run the whole controller synchronously.

    This function should be used to run the controller in normal sync mode.
    """
    try:
        asyncio.run(serve(
            config=config,
            namespace=namespace,
            settings=settings,
            stop_flag=stop_flag,
        ))
    except asyncio.CancelledError:
        pass


async def serve(
        *,
        config: configuration.ControllerConfig,
        namespace: Optional[str] = None,
        settings: Optional[configuration.ControllerSettings] = None,
        stop_flag: Optional[aioflags.Flag] = None,
) -> None:
    """
    Run the controller in the current event loop until stopped.

    If the configuration has no cluster context, the credentials are taken
    from the service account or from the kubeconfig, and the context is made
    for the duration of the run.
    """
    if config.context is not None:
        await _serve(config=config, namespace=namespace, settings=settings, stop_flag=stop_flag)
    else:
        info = piggybacking.login(logger=logger)
        async with auth.APIContext(info) as context:
            config = dataclasses.replace(config, context=context)
            await _serve(config=config, namespace=namespace, settings=settings, stop_flag=stop_flag)


async def _serve(
        *,
        config: configuration.ControllerConfig,
        namespace: Optional[str],
        settings: Optional[configuration.ControllerSettings],
        stop_flag: Optional[aioflags.Flag],
) -> None:
    loop = asyncio.get_running_loop()
    signal_flag: aiotasks.Future = loop.create_future()

    # On Ctrl+C or pod termination, stop the dispatching gracefully.
    if threading.current_thread() is threading.main_thread():
        # Handle NotImplementedError when ran on Windows since asyncio only supports Unix signals
        try:
            loop.add_signal_handler(signal.SIGINT, _set_once, signal_flag, signal.SIGINT)
            loop.add_signal_handler(signal.SIGTERM, _set_once, signal_flag, signal.SIGTERM)
        except NotImplementedError:
            logger.warning("OS signals are ignored: can't add signal handler in Windows.")
    else:
        logger.warning("OS signals are ignored: running not in the main thread.")

    stop_flag_checker = asyncio.create_task(
        _stop_flag_checker(signal_flag=signal_flag, stop_flag=stop_flag),
        name="stop-flag checker",
    )
    try:
        controller = controlling.SwiftController(config, settings=settings)
        task = await controller.start(namespace, signal_flag)
        await task
    finally:
        await aiotasks.stop([stop_flag_checker], title="stop-flag checker", logger=logger)
        if threading.current_thread() is threading.main_thread():
            try:
                loop.remove_signal_handler(signal.SIGINT)
                loop.remove_signal_handler(signal.SIGTERM)
            except NotImplementedError:
                pass


def _set_once(future: aiotasks.Future, result: object) -> None:
    if not future.done():
        future.set_result(result)


async def _stop_flag_checker(
        signal_flag: aiotasks.Future,
        stop_flag: Optional[aioflags.Flag],
) -> None:
    """
    Wait until either a signal is received or the stop-flag is raised.

    Both ways end in the signal flag, which is the stop-flag of the controller.
    """
    waiter: Optional[aiotasks.Task] = None
    flags: list[aiotasks.Future] = [signal_flag]
    if stop_flag is not None:
        waiter = asyncio.create_task(aioflags.wait_flag(stop_flag), name="stop-flag waiter")
        flags.append(waiter)
    try:
        await asyncio.wait(flags, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if waiter is not None:
            await aiotasks.stop([waiter], title="stop-flag waiter", logger=logger)

    result = await signal_flag if signal_flag.done() else None
    if isinstance(result, signal.Signals):
        logger.info("Signal %s is received. Controller is stopping.", result.name)
    else:
        logger.info("Stop-flag is raised. Controller is stopping.")
    _set_once(signal_flag, None)
