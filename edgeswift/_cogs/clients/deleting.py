from edgeswift._cogs.clients import api, auth, errors
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import references


async def delete_obj(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        name: str,
        logger: typedefs.Logger,
) -> bool:
    """
    Delete a resource with the background propagation to its dependents.

    Returns ``True`` if the object was deleted, ``False`` if it was absent.
    An absent object is not an error: the goal is already achieved.
    """
    try:
        await api.delete(
            url=resource.get_url(namespace=namespace, name=name),
            payload={'propagationPolicy': 'Background'},
            context=context,
            settings=settings,
            logger=logger,
        )
        return True
    except errors.APINotFoundError:
        return False
