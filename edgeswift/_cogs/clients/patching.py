from typing import Any, Mapping, Optional

from edgeswift._cogs.clients import api, auth, errors
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import bodies, references


async def patch_obj(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        name: Optional[str],
        patch: Mapping[str, Any],
        logger: typedefs.Logger,
) -> Optional[bodies.RawBody]:
    """
    Patch a resource of specific kind with a JSON merge-patch.

    Unlike the object listing, the namespaced call is always
    used for the namespaced resources, even if the controller serves
    the whole cluster (i.e. is not namespace-restricted).

    Returns the patched body as reported by the server.

    Returns ``None`` if the underlying object is absent, as detected by trying
    to patch it and failing with HTTP 404. This can happen if the object was
    never created, or was deleted externally during the processing,
    so that the caller can decide to re-create it.
    """
    try:
        patched_body: bodies.RawBody = await api.patch(
            url=resource.get_url(namespace=namespace, name=name),
            headers={'Content-Type': 'application/merge-patch+json'},
            payload=dict(patch),
            context=context,
            settings=settings,
            logger=logger,
        )
        return patched_body

    except errors.APINotFoundError:
        return None
