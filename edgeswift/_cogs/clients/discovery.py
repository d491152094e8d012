from typing import Optional

from edgeswift._cogs.clients import api, auth, errors
from edgeswift._cogs.configs import configuration
from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import references


async def discover(
        *,
        context: auth.APIContext,
        settings: configuration.ControllerSettings,
        resource: references.Resource,
        logger: typedefs.Logger,
) -> Optional[references.Resource]:
    """
    Check if the resource is served by the API, and fill its actual properties.

    Returns ``None`` if the API group-version or the resource are not served
    (e.g. when the CRD is not installed). Other API errors are escalated.
    """
    try:
        rsp = await api.get(
            url=resource.get_version_url(),
            context=context,
            settings=settings,
            logger=logger,
        )
    except errors.APINotFoundError:
        return None

    for info in rsp.get('resources', []):
        if info.get('name') == resource.plural:  # sub-resources have slashes, so never match.
            return references.Resource(
                group=resource.group,
                version=resource.version,
                plural=resource.plural,
                kind=info.get('kind', resource.kind),
                namespaced=info.get('namespaced', resource.namespaced),
            )
    return None
