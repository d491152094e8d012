"""
In-memory doubles of the watch transport and the convergence API.

They are used to test the controller (and the applications embedding it)
with no cluster: the events are scripted, the backing objects are remembered
in memory, and all the calls are recorded for later assertions.
"""
import asyncio
import dataclasses
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple, Union

from edgeswift._cogs.aiokits import aiotasks
from edgeswift._cogs.structs import references, swifts
from edgeswift._core.engines import convergence
from edgeswift._core.reactor import subscriptions

BackingKey = Tuple[Optional[str], str]  # namespace & name


@dataclasses.dataclass(frozen=True)
class ConvergenceCall:
    operation: str  # "create", "update", "delete"
    instance: swifts.SwiftInstance
    owners: Tuple[swifts.OwnerReference, ...] = ()


class InMemoryConvergence:
    """
    The convergence API that keeps the "backing objects" in memory.

    The semantics are the same as of the real one: creating is idempotent,
    updating an absent instance creates it, deleting an absent one is fine.
    The operations listed in ``failing`` raise :class:`ConvergenceFailure`.
    """

    def __init__(self, *, failing: Collection[str] = ()) -> None:
        super().__init__()
        self.failing = set(failing)
        self.calls: List[ConvergenceCall] = []
        self.backings: Dict[BackingKey, ConvergenceCall] = {}

    def _check(self, operation: str, instance: swifts.SwiftInstance) -> None:
        if operation in self.failing:
            raise convergence.ConvergenceFailure(
                f"Simulated failure of {operation}.",
                operation=operation, name=instance.name, namespace=instance.namespace)

    async def create_backing(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> None:
        call = ConvergenceCall('create', instance, tuple(owners))
        self.calls.append(call)
        self._check('create', instance)
        self.backings[(instance.namespace, instance.name)] = call

    async def update_backing(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> None:
        call = ConvergenceCall('update', instance, tuple(owners))
        self.calls.append(call)
        self._check('update', instance)
        self.backings[(instance.namespace, instance.name)] = call

    async def delete_backing(
            self,
            instance: swifts.SwiftInstance,
    ) -> None:
        self.calls.append(ConvergenceCall('delete', instance))
        self._check('delete', instance)
        self.backings.pop((instance.namespace, instance.name), None)

    def operations(self) -> List[str]:
        return [call.operation for call in self.calls]


# ("add", payload), ("update", old_payload, new_payload), ("delete", payload)
ScriptedEvent = Union[Tuple[str, Any], Tuple[str, Any, Any]]


class ScriptedWatchTransport:
    """
    The watch transport that replays the scripted events, then idles.

    The events are delivered one by one, each after the previous one is fully
    handled. The stopper is checked between the events. Once the script is
    over, the loop waits for the stopper, as the real watch-streams do.
    """

    def __init__(
            self,
            events: Sequence[ScriptedEvent] = (),
            *,
            setup_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__()
        self.events = list(events)
        self.setup_error = setup_error
        self.subscriptions: List[Tuple[references.Resource, references.Namespace]] = []
        self.delivered: List[ScriptedEvent] = []
        self.finished = asyncio.Event()

    async def subscribe(
            self,
            *,
            resource: references.Resource,
            namespace: references.Namespace,
            handlers: subscriptions.EventHandlers,
    ) -> subscriptions.WatchLoop:
        if self.setup_error is not None:
            raise self.setup_error
        self.subscriptions.append((resource, namespace))

        async def watch_loop(*, stopper: aiotasks.Future) -> None:
            for event in self.events:
                if stopper.done():
                    break
                kind, *payloads = event
                if kind == 'add':
                    await handlers.on_add(*payloads)
                elif kind == 'update':
                    await handlers.on_update(*payloads)
                elif kind == 'delete':
                    await handlers.on_delete(*payloads)
                else:
                    raise ValueError(f"Unknown scripted event: {event!r}")
                self.delivered.append(event)
            self.finished.set()
            await asyncio.wait([stopper])

        return watch_loop
