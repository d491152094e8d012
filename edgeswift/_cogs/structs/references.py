import dataclasses
import urllib.parse
from typing import Iterator, List, Mapping, NewType, Optional

# A specific really existing addressable namespace (at least, the one assumed to be so).
# Made as a NewType for stricter type-checking to avoid collisions with other strings.
NamespaceName = NewType('NamespaceName', str)

# A namespace reference usable in the API calls. `None` means cluster-wide API calls.
Namespace = Optional[NamespaceName]


def namespace_scope(namespace: Optional[str]) -> Namespace:
    """ Interpret an empty namespace as "all namespaces", i.e. cluster-wide. """
    return NamespaceName(namespace) if namespace else None


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class Resource:
    """
    A reference to a very specific custom or built-in resource kind.

    It is used to form the K8s API URLs. Generally, K8s API only needs
    an API group, an API version, and a plural name of the resource.
    The kind is remembered to validate the payloads and for logging.
    """

    group: str
    """
    The resource's API group; e.g. ``"edgefs.rook.io"``, ``"apps"``.
    For Core v1 API resources, an empty string: ``""``.
    """

    version: str
    """
    The resource's API version; e.g. ``"v1"``, ``"v1alpha1"``, etc.
    """

    plural: str
    """
    The resource's plural name; e.g. ``"swifts"``, ``"deployments"``.
    It is used as an API endpoint, together with API group & version.
    """

    kind: Optional[str] = None
    """
    The resource's kind (as in YAML files); e.g. ``"SWIFT"``, ``"Service"``.
    """

    namespaced: Optional[bool] = None
    """
    Whether the resource is namespaced (``True``) or cluster-scoped (``False``).
    """

    def __hash__(self) -> int:
        return hash((self.group, self.version, self.plural))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Resource):
            self_tuple = (self.group, self.version, self.plural)
            other_tuple = (other.group, other.version, other.plural)
            return self_tuple == other_tuple
        else:
            return NotImplemented

    def __repr__(self) -> str:
        return f'{self.plural}.{self.version}.{self.group}'.strip('.')

    def __iter__(self) -> Iterator[str]:
        return iter((self.group, self.version, self.plural))

    @property
    def api_version(self) -> str:
        """ The ``apiVersion`` as seen in the objects' bodies; e.g. ``"apps/v1"``. """
        return f'{self.group}/{self.version}' if self.group else self.version

    def get_version_url(self) -> str:
        """ The URL of the API group-version, as used for the resource discovery. """
        return '/api/v1' if self.group == '' and self.version == 'v1' else \
            f'/apis/{self.group}/{self.version}'

    def get_url(
            self,
            *,
            server: Optional[str] = None,
            namespace: Namespace = None,
            name: Optional[str] = None,
            params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Build a URL to be used with K8s API.

        If the namespace is not set, a cluster-wide URL is returned.
        For cluster-scoped resources, the namespace is ignored.

        If the name is not set, the URL for the resource list is returned.
        Otherwise (if set), the URL for the individual resource is returned.

        Params go to the query parameters (``?param1=value1&param2=value2...``).
        """
        if not self.namespaced and namespace is not None:
            raise ValueError(f"Specific namespaces are not supported for cluster-scoped resources.")
        if self.namespaced and namespace is None and name is not None:
            raise ValueError("Specific namespaces are required for specific namespaced resources.")

        parts: List[Optional[str]] = [
            self.get_version_url(),
            'namespaces' if self.namespaced and namespace is not None else None,
            namespace if self.namespaced and namespace is not None else None,
            self.plural,
            name,
        ]

        query = urllib.parse.urlencode(params, encoding='utf-8') if params else ''
        path = '/'.join([part.strip('/') for part in parts if part])
        url = '/' + path + ('?' if query else '') + query
        return url if server is None else server.rstrip('/') + url


# The custom resource served by this controller, and the backing resources it provisions.
SWIFTS = Resource('edgefs.rook.io', 'v1alpha1', 'swifts', kind='SWIFT', namespaced=True)
DEPLOYMENTS = Resource('apps', 'v1', 'deployments', kind='Deployment', namespaced=True)
SERVICES = Resource('', 'v1', 'services', kind='Service', namespaced=True)
