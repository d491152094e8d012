"""
The main module of the EdgeFS SWIFT controller: the exported classes & functions.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the top-level interface,
# as it is seen by the users. So, we export the individual names.

from edgeswift._cogs.aiokits.aioflags import (
    Flag,
)
from edgeswift._cogs.clients.auth import (
    APIContext,
)
from edgeswift._cogs.clients.errors import (
    APIError,
    APIClientError,
    APIServerError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
)
from edgeswift._cogs.clients.piggybacking import (
    login,
    login_with_kubeconfig,
    login_with_service_account,
)
from edgeswift._cogs.clients.watching import (
    WatchingError,
)
from edgeswift._cogs.configs.configuration import (
    ControllerConfig,
    ControllerSettings,
    NetworkingSettings,
    WatchingSettings,
)
from edgeswift._cogs.helpers.typedefs import (
    Logger,
)
from edgeswift._cogs.structs.credentials import (
    ConnectionInfo,
    LoginError,
)
from edgeswift._cogs.structs.quantities import (
    QuantityError,
    parse_quantity,
)
from edgeswift._cogs.structs.references import (
    Resource,
    SWIFTS,
)
from edgeswift._cogs.structs.swifts import (
    OwnerReference,
    SwiftInstance,
    SwiftSpec,
    SCHEMA_DEFAULTS,
    resolve_spec,
)
from edgeswift._core.actions.loggers import (
    LogFormat,
    ObjectLogger,
    configure,
)
from edgeswift._core.engines.convergence import (
    Convergence,
    ConvergenceFailure,
    KubernetesConvergence,
)
from edgeswift._core.intents.changes import (
    changed,
    spec_diff,
)
from edgeswift._core.intents.normalizing import (
    TypeMismatch,
    normalize,
)
from edgeswift._core.intents.owners import (
    owners_for,
)
from edgeswift._core.reactor.controlling import (
    SubscriptionSetupFailure,
    SwiftController,
)
from edgeswift._core.reactor.processing import (
    Reconciler,
)
from edgeswift._core.reactor.running import (
    run,
    serve,
)
from edgeswift._core.reactor.subscriptions import (
    EventHandlers,
    KubernetesWatchTransport,
    ResourceNotServed,
    WatchLoop,
    WatchTransport,
)

__all__ = [
    'Flag',
    'APIContext',
    'APIError', 'APIClientError', 'APIServerError',
    'APIUnauthorizedError', 'APIForbiddenError', 'APINotFoundError', 'APIConflictError',
    'login', 'login_with_kubeconfig', 'login_with_service_account',
    'WatchingError',
    'ControllerConfig', 'ControllerSettings', 'NetworkingSettings', 'WatchingSettings',
    'Logger',
    'ConnectionInfo', 'LoginError',
    'QuantityError', 'parse_quantity',
    'Resource', 'SWIFTS',
    'OwnerReference', 'SwiftInstance', 'SwiftSpec', 'SCHEMA_DEFAULTS', 'resolve_spec',
    'LogFormat', 'ObjectLogger', 'configure',
    'Convergence', 'ConvergenceFailure', 'KubernetesConvergence',
    'changed', 'spec_diff',
    'TypeMismatch', 'normalize',
    'owners_for',
    'SubscriptionSetupFailure', 'SwiftController',
    'Reconciler',
    'run', 'serve',
    'EventHandlers', 'KubernetesWatchTransport', 'ResourceNotServed',
    'WatchLoop', 'WatchTransport',
]
