"""
Ownership of the backing objects: they belong to the EdgeFS cluster, not to the SWIFT resource.
"""
from typing import Tuple

from edgeswift._cogs.configs import configuration
from edgeswift._cogs.structs import swifts


def owners_for(
        instance: swifts.SwiftInstance,
        *,
        config: configuration.ControllerConfig,
) -> Tuple[swifts.OwnerReference, ...]:
    """
    Determine the owners to attach to the instance's backing objects.

    It is always the single cluster-level owner from the configuration,
    regardless of the instance: the backing objects are garbage-collected
    together with the cluster, not with the SWIFT resource.
    """
    return (config.owner_ref,)
