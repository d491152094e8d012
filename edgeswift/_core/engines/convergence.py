"""
The convergence API: the operations that drive the backing objects.

The reconciler only decides *what* should happen with the backing objects
of a SWIFT resource; the convergence API decides *how*. All the operations
are idempotent "ensure"-style calls: creating an existing object or deleting
an absent one is not an error. There is no local bookkeeping of what was
done before: the cluster itself is the only source of truth.
"""
import logging
from typing import Optional, Protocol, Sequence

from edgeswift._cogs.clients import auth, creating, deleting, errors, patching
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import bodies, references, swifts
from edgeswift._core.engines import rendering

logger = logging.getLogger(__name__)


class ConvergenceFailure(Exception):
    """
    Raised when the backing objects could not be driven to the desired state.

    The original error (e.g. an API error) is chained as the cause.
    """

    def __init__(
            self,
            message: str,
            *,
            operation: str,
            name: str,
            namespace: Optional[str],
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.name = name
        self.namespace = namespace


class Convergence(Protocol):
    """
    The operations of the convergence API, as used by the reconciler.
    """

    async def create_backing(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> None: ...

    async def update_backing(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> None: ...

    async def delete_backing(
            self,
            instance: swifts.SwiftInstance,
    ) -> None: ...


class KubernetesConvergence:
    """
    The convergence API backed by the Kubernetes Deployments & Services.
    """

    def __init__(
            self,
            *,
            context: auth.APIContext,
            config: configuration.ControllerConfig,
            settings: Optional[configuration.ControllerSettings] = None,
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__()
        self.context = context
        self.config = config
        self.settings = settings if settings is not None else configuration.ControllerSettings()
        self.logger = logger

    def render(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> list[tuple[references.Resource, bodies.RawBody]]:
        return [
            (references.DEPLOYMENTS, rendering.render_deployment(instance, owners, config=self.config)),
            (references.SERVICES, rendering.render_service(instance, owners, config=self.config)),
        ]

    async def create_backing(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> None:
        """ Ensure the backing objects exist: create them, or patch the existing ones. """
        for resource, body in self.render(instance, owners):
            try:
                await self._create_or_patch(resource, body)
            except errors.APIError as e:
                raise ConvergenceFailure(f"Failed to create {resource.kind}: {e}",
                                         operation='create', name=instance.name,
                                         namespace=instance.namespace) from e

    async def update_backing(
            self,
            instance: swifts.SwiftInstance,
            owners: Sequence[swifts.OwnerReference],
    ) -> None:
        """ Ensure the backing objects match: patch them, or create the absent ones. """
        for resource, body in self.render(instance, owners):
            try:
                await self._patch_or_create(resource, body)
            except errors.APIError as e:
                raise ConvergenceFailure(f"Failed to update {resource.kind}: {e}",
                                         operation='update', name=instance.name,
                                         namespace=instance.namespace) from e

    async def delete_backing(
            self,
            instance: swifts.SwiftInstance,
    ) -> None:
        """ Ensure the backing objects are absent. The absent ones are fine. """
        name = rendering.backing_name(instance)
        namespace = references.namespace_scope(instance.namespace)
        for resource in [references.SERVICES, references.DEPLOYMENTS]:
            try:
                deleted = await deleting.delete_obj(
                    context=self.context,
                    settings=self.settings,
                    resource=resource,
                    namespace=namespace,
                    name=name,
                    logger=self.logger,
                )
            except errors.APIError as e:
                raise ConvergenceFailure(f"Failed to delete {resource.kind}: {e}",
                                         operation='delete', name=instance.name,
                                         namespace=instance.namespace) from e
            if not deleted:
                self.logger.debug(f"{resource.kind} {name!r} is already absent.")

    async def _create_or_patch(self, resource: references.Resource, body: bodies.RawBody) -> None:
        try:
            await creating.create_obj(
                context=self.context,
                settings=self.settings,
                resource=resource,
                body=body,
                logger=self.logger,
            )
        except errors.APIConflictError:
            self.logger.debug(f"{resource.kind} {body['metadata']['name']!r} exists; patching.")
            await self._patch(resource, body)

    async def _patch_or_create(self, resource: references.Resource, body: bodies.RawBody) -> None:
        patched = await self._patch(resource, body)
        if patched is None:
            self.logger.debug(f"{resource.kind} {body['metadata']['name']!r} is absent; creating.")
            await creating.create_obj(
                context=self.context,
                settings=self.settings,
                resource=resource,
                body=body,
                logger=self.logger,
            )

    async def _patch(
            self,
            resource: references.Resource,
            body: bodies.RawBody,
    ) -> Optional[bodies.RawBody]:
        meta = body['metadata']
        return await patching.patch_obj(
            context=self.context,
            settings=self.settings,
            resource=resource,
            namespace=references.namespace_scope(meta.get('namespace')),
            name=meta['name'],
            patch=rendering.render_patch(body),
            logger=self.logger,
        )
