"""
Subscriptions to the events of a resource kind: the watch transports.

A watch transport turns a source of the resource's changes into the calls
of three handlers: for additions, updates (with the old & new payloads),
and deletions. The subscription is set up first, and fails immediately
if it cannot be set up; the events are then delivered by the watch loop,
sequentially and in order, until the loop is stopped.
"""
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, NamedTuple, Optional, Protocol, Set

from edgeswift._cogs.aiokits import aiotasks
from edgeswift._cogs.clients import auth, discovery, watching
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import bodies, dicts, references

logger = logging.getLogger(__name__)


class EventHandlers(NamedTuple):
    on_add: Callable[[Any], Awaitable[None]]
    on_update: Callable[[Any, Any], Awaitable[None]]
    on_delete: Callable[[Any], Awaitable[None]]


class WatchLoop(Protocol):
    """ A prepared subscription: runs until the stopper is done. """
    async def __call__(self, *, stopper: aiotasks.Future) -> None: ...


class WatchTransport(Protocol):
    """ A source of the events for a resource kind in a namespace (or all). """
    async def subscribe(
            self,
            *,
            resource: references.Resource,
            namespace: references.Namespace,
            handlers: EventHandlers,
    ) -> WatchLoop: ...


class ResourceNotServed(Exception):
    """ Raised when the resource kind is not served by the API (e.g. no CRD). """


class KubernetesWatchTransport:
    """
    The watch transport on top of the Kubernetes list & watch API calls.

    It works as an informer: it remembers the last seen body of every object,
    so that the updates can be delivered with both the old & new payloads,
    and so that the objects deleted while the watch-stream was disconnected
    are noticed on the re-listing (and are delivered as deletions).
    """

    def __init__(
            self,
            *,
            context: auth.APIContext,
            settings: Optional[configuration.ControllerSettings] = None,
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__()
        self.context = context
        self.settings = settings if settings is not None else configuration.ControllerSettings()
        self.logger = logger

    async def subscribe(
            self,
            *,
            resource: references.Resource,
            namespace: references.Namespace,
            handlers: EventHandlers,
    ) -> WatchLoop:
        served = await discovery.discover(
            context=self.context,
            settings=self.settings,
            resource=resource,
            logger=self.logger,
        )
        if served is None:
            raise ResourceNotServed(f"Resource {resource} is not served by the API.")
        return functools.partial(self.watch, resource=served, namespace=namespace, handlers=handlers)

    async def watch(
            self,
            *,
            resource: references.Resource,
            namespace: references.Namespace,
            handlers: EventHandlers,
            stopper: aiotasks.Future,
    ) -> None:
        known: Dict[str, Mapping[str, Any]] = {}
        listed: Set[str] = set()
        stream = watching.infinite_watch(
            context=self.context,
            settings=self.settings,
            resource=resource,
            namespace=namespace,
            stopper=stopper,
        )
        async for raw_event in stream:
            if stopper.done():
                break

            # After the (re-)listing, the unlisted objects are gone while we were not watching.
            if isinstance(raw_event, watching.Bookmark):
                for key in [key for key in known if key not in listed]:
                    if stopper.done():
                        break
                    await self._deliver(handlers.on_delete, known.pop(key))
                listed.clear()
                continue

            raw_type = raw_event['type']
            body = dicts.freeze(raw_event['object'])
            key = get_key(raw_event['object'])
            if raw_type is None:
                listed.add(key)

            if raw_type == 'DELETED':
                known.pop(key, None)
                await self._deliver(handlers.on_delete, body)
                continue

            old = known.get(key)
            known[key] = body
            if old is None:
                await self._deliver(handlers.on_add, body)
            elif raw_type is None and get_version(old) == get_version(body):
                pass  # re-listed with no changes since the last seen state.
            else:
                await self._deliver(handlers.on_update, old, body)

    async def _deliver(self, handler: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await handler(*args)
        except Exception:
            self.logger.exception(f"Event handler {handler!r} failed; continuing with other events.")


def get_key(body: bodies.RawBody) -> str:
    """ A unique identifier of the object across the re-creations of the same name. """
    uid = dicts.resolve(body, 'metadata.uid', None)
    namespace = dicts.resolve(body, 'metadata.namespace', None)
    name = dicts.resolve(body, 'metadata.name', None)
    return uid if uid else f"{namespace}/{name}"


def get_version(body: Mapping[str, Any]) -> Optional[str]:
    return dicts.resolve(body, 'metadata.resourceVersion', None)
