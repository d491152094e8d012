"""
Reconciliation of the individual events of the SWIFT resources.

Every event is handled completely on its own: the payloads are normalized,
the changes are detected (for updates), and the convergence API is called.
The outcome is only logged. Nothing is returned to the event source,
nothing is re-queued or retried: the failed events are dropped, and
the next event for the same object converges it again.
"""
import logging
from typing import Any, Awaitable, Callable, Optional

from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import references, swifts
from edgeswift._core.actions import loggers
from edgeswift._core.engines import convergence
from edgeswift._core.intents import changes, normalizing, owners

logger = logging.getLogger(__name__)


class Reconciler:
    """
    The event handlers for additions, updates, and deletions of the resources.

    The handlers never raise (except for cancellations): all the failures
    are logged with the instance's name & namespace and the operation.
    """

    def __init__(
            self,
            *,
            config: configuration.ControllerConfig,
            convergence: convergence.Convergence,
            resource: references.Resource = references.SWIFTS,
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__()
        self.config = config
        self.convergence = convergence
        self.resource = resource
        self.logger = logger

    def _normalize(self, raw: Any, *, what: str) -> Optional[swifts.SwiftInstance]:
        try:
            return normalizing.normalize(raw, resource=self.resource)
        except normalizing.TypeMismatch as e:
            self.logger.error(f"Failed to get {what}swift object: {e}")
            return None

    async def on_add(self, raw: Any) -> None:
        instance = self._normalize(raw, what='')
        if instance is None:
            return

        owner_refs = owners.owners_for(instance, config=self.config)
        await self._converge('create', instance, self.convergence.create_backing,
                             instance, owner_refs)

    async def on_update(self, raw_old: Any, raw_new: Any) -> None:
        old = self._normalize(raw_old, what='old ')
        if old is None:
            return
        new = self._normalize(raw_new, what='new ')
        if new is None:
            return

        object_logger = loggers.ObjectLogger(instance=new, logger=self.logger)
        try:
            diff = changes.spec_diff(old.spec, new.spec, defaults=self.config.spec_defaults())
        except Exception as e:
            object_logger.error(
                f"Failed to detect swift {new.name} changes "
                f"in namespace {new.namespace!r}: {e}",
                exc_info=e,
            )
            return

        if not diff:
            object_logger.debug(f"Swift {new.name} did not change.")
            return

        object_logger.info(f"Applying swift {new.name} changes: {diff}")
        owner_refs = owners.owners_for(new, config=self.config)
        await self._converge('update', new, self.convergence.update_backing,
                             new, owner_refs)

    async def on_delete(self, raw: Any) -> None:
        instance = self._normalize(raw, what='')
        if instance is None:
            return

        await self._converge('delete', instance, self.convergence.delete_backing,
                             instance)

    async def _converge(
            self,
            operation: str,
            instance: swifts.SwiftInstance,
            fn: Callable[..., Awaitable[None]],
            *args: Any,
    ) -> None:
        object_logger = loggers.ObjectLogger(instance=instance, logger=self.logger)
        try:
            await fn(*args)
        except Exception as e:
            object_logger.error(
                f"Failed to {operation} swift {instance.name} "
                f"in namespace {instance.namespace!r}: {e}",
                exc_info=e,
            )
        else:
            object_logger.info(f"Swift {instance.name} is converged ({operation}).")
