"""
The SWIFT controller: the entry point for the embedding applications.

The controller is constructed once with its configuration, and is then
started for a namespace (or for the whole cluster). Starting subscribes
to the events of the SWIFT resources, and returns a background task which
dispatches the events to the reconciler until the stop-flag is raised.
"""
import asyncio
import logging
from typing import Any, Optional, Tuple

from edgeswift._cogs.aiokits import aioflags, aiotasks
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import references, swifts
from edgeswift._core.engines.convergence import Convergence, KubernetesConvergence
from edgeswift._core.intents import owners
from edgeswift._core.reactor import processing, subscriptions


class SubscriptionSetupFailure(Exception):
    """
    Raised when the controller cannot subscribe to the resource's events.

    The original error (e.g. an API error or a missing resource) is chained.
    """


class SwiftController:
    """
    A controller of the SWIFT resources and their backing objects.

    The watch transport and the convergence API are made from the cluster
    context of the configuration unless they are provided explicitly.
    """

    def __init__(
            self,
            config: configuration.ControllerConfig,
            *,
            transport: Optional[subscriptions.WatchTransport] = None,
            convergence: Optional[Convergence] = None,
            settings: Optional[configuration.ControllerSettings] = None,
            logger: Optional[typedefs.Logger] = None,
            resource: references.Resource = references.SWIFTS,
    ) -> None:
        super().__init__()
        settings = settings if settings is not None else configuration.ControllerSettings()
        logger = logger if logger is not None else logging.getLogger(__name__)

        if transport is None or convergence is None:
            if config.context is None:
                raise ValueError("A cluster context is required unless both the watch transport "
                                 "and the convergence API are provided.")
        if transport is None:
            transport = subscriptions.KubernetesWatchTransport(
                context=config.context, settings=settings, logger=logger)
        if convergence is None:
            convergence = KubernetesConvergence(
                context=config.context, config=config, settings=settings, logger=logger)

        self.config = config
        self.settings = settings
        self.logger = logger
        self.resource = resource
        self.transport = transport
        self.convergence = convergence
        self.reconciler = processing.Reconciler(
            config=config,
            convergence=convergence,
            resource=resource,
            logger=logger,
        )

    def owners_for(self, instance: swifts.SwiftInstance) -> Tuple[swifts.OwnerReference, ...]:
        return owners.owners_for(instance, config=self.config)

    async def on_add(self, raw: Any) -> None:
        await self.reconciler.on_add(raw)

    async def on_update(self, raw_old: Any, raw_new: Any) -> None:
        await self.reconciler.on_update(raw_old, raw_new)

    async def on_delete(self, raw: Any) -> None:
        await self.reconciler.on_delete(raw)

    async def start(
            self,
            namespace: Optional[str],
            stop_flag: Optional[aioflags.Flag],
    ) -> aiotasks.Task:
        """
        Subscribe to the resource's events, and start dispatching them.

        An empty or ``None`` namespace means all namespaces (cluster-wide).
        Raises :class:`SubscriptionSetupFailure` if the subscription fails.
        Otherwise, returns the dispatching task, which ends when the stop-flag
        is raised: the currently handled event is finished, the rest is not.
        """
        scope = references.namespace_scope(namespace)
        where = f'in namespace {scope}' if scope is not None else 'in all namespaces'
        self.logger.info(f"Start watching swift resources {where}.")

        handlers = subscriptions.EventHandlers(
            on_add=self.on_add,
            on_update=self.on_update,
            on_delete=self.on_delete,
        )
        try:
            watch_loop = await self.transport.subscribe(
                resource=self.resource,
                namespace=scope,
                handlers=handlers,
            )
        except Exception as e:
            raise SubscriptionSetupFailure(f"Cannot watch {self.resource} {where}: {e}") from e

        return aiotasks.create_guarded_task(
            name=f"watcher for {self.resource} {where}",
            coro=self._dispatch(watch_loop, stop_flag),
            finishable=True,
            cancellable=True,
            logger=self.logger,
        )

    async def _dispatch(
            self,
            watch_loop: subscriptions.WatchLoop,
            stop_flag: Optional[aioflags.Flag],
    ) -> None:
        stopper: aiotasks.Future = asyncio.get_running_loop().create_future()
        flag_waiter = asyncio.create_task(_stop_on_flag(stop_flag, stopper),
                                          name=f"stop-flag waiter for {self.resource}")
        try:
            await watch_loop(stopper=stopper)
        finally:
            await aiotasks.stop([flag_waiter], title="stop-flag", logger=self.logger)
        self.logger.info("Stopped watching swift resources.")


async def _stop_on_flag(stop_flag: Optional[aioflags.Flag], stopper: aiotasks.Future) -> None:
    await aioflags.wait_flag(stop_flag)
    if not stopper.done():
        stopper.set_result(None)
