"""
The controller's configuration and the fine-tuning settings.

:class:`ControllerConfig` is what the controller is made of: it is immutable,
constructed once at startup, and is shared read-only by all reconciliations.

:class:`ControllerSettings` is how the controller talks to the cluster:
timeouts, backoffs, etc. All of them have reasonable defaults. The settings
are grouped semantically just for convenience (instead of a flat object).
"""
import dataclasses
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Union

from edgeswift._cogs.structs import dicts, swifts

if TYPE_CHECKING:
    from edgeswift._cogs.clients import auth


@dataclasses.dataclass(frozen=True, kw_only=True)
class ControllerConfig:
    """
    The immutable configuration of the SWIFT controller.

    All the backing objects of all the SWIFT resources get the same single
    owner reference (usually the EdgeFS cluster object): deleting that owner
    cascade-deletes the backing objects even if the controller is not running.
    """

    context: Optional["auth.APIContext"] = None
    """
    The cluster context handle: the authenticated API session.
    It can be ``None`` only if the watch transport and the convergence API
    are both provided explicitly (e.g. in tests).
    """

    image: str
    """ The workload image reference for the SWIFT gateway containers. """

    host_network: bool = False
    """ Run the gateways in the host network by default. """

    data_dir_host_path: str = ''
    """ The host path for the gateways' data by default; empty for no host path. """

    data_volume_size: str = ''
    """ The size of the gateways' data volume by default; empty for unlimited. """

    placement: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    """ The default placement: nodeAffinity, podAffinity, podAntiAffinity, tolerations. """

    resources: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    """ The default resource requirements (requests & limits) of the gateways. """

    resource_profile: str = ''
    """ The default resource-profile tag; e.g. ``"embedded"`` for low-memory nodes. """

    owner_ref: swifts.OwnerReference
    """ The owner reference to attach to every backing object. """

    def __post_init__(self) -> None:
        # Own the mappings, so that the caller's dicts can be changed safely.
        object.__setattr__(self, 'placement', dicts.freeze(self.placement))
        object.__setattr__(self, 'resources', dicts.freeze(self.resources))

    def spec_defaults(self) -> swifts.SwiftSpec:
        """ The controller-level defaults for the unset fields of the specs. """
        return swifts.SwiftSpec(
            host_network=self.host_network,
            data_dir_host_path=self.data_dir_host_path,
            data_volume_size=self.data_volume_size,
            placement=self.placement,
            resources=self.resources,
            resource_profile=self.resource_profile,
        )


@dataclasses.dataclass
class WatchingSettings:

    server_timeout: Optional[float] = None
    """
    The maximum duration of one streaming request. Patched in some tests.
    If ``None``, then obeys the server-side default (usually 1 hour).
    """

    client_timeout: Optional[float] = None
    """
    An HTTP/HTTPS session timeout to use in watch requests.
    """

    connect_timeout: Optional[float] = None
    """
    An HTTP/HTTPS connection timeout to use in watch requests.
    """

    reconnect_backoff: float = 0.1
    """
    How long should a pause be between watch requests (to prevent API flooding).
    """


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for the regular (non-streaming) API requests, in seconds.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for the connection establishing, in seconds.
    """

    error_backoffs: Union[float, Iterable[float]] = (1, 1, 2, 3, 5, 8, 13, 21)
    """
    Backoffs (in seconds) for retrying the API requests on connection errors
    and server-side errors (HTTP 5xx). The last or the only failure is raised.
    Set to an empty collection to disable the retries.
    """


@dataclasses.dataclass
class ControllerSettings:
    watching: WatchingSettings = dataclasses.field(default_factory=WatchingSettings)
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
