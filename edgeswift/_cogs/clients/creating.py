from typing import Optional, cast

from edgeswift._cogs.clients import api, auth
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import bodies, references


async def create_obj(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        namespace: references.Namespace = None,
        name: Optional[str] = None,
        body: Optional[bodies.RawBody] = None,
        logger: typedefs.Logger,
) -> Optional[bodies.RawBody]:
    """
    Create a resource.

    Raises `errors.APIConflictError` if the object already exists:
    it is up to the caller to decide if this is fine or not.
    """
    body = body if body is not None else {}
    if namespace is not None:
        body.setdefault('metadata', {}).setdefault('namespace', namespace)
    if name is not None:
        body.setdefault('metadata', {}).setdefault('name', name)

    namespace = cast(references.Namespace, body.get('metadata', {}).get('namespace'))
    created_body: bodies.RawBody = await api.post(
        url=resource.get_url(namespace=namespace),
        payload=body,
        context=context,
        settings=settings,
        logger=logger,
    )
    return created_body
