"""
Connection & authentication info for the Kubernetes API.

The info is retrieved once at startup by one of the login functions
(see :mod:`edgeswift._cogs.clients.piggybacking`), and is then used
to make an authenticated aiohttp session (see :class:`APIContext`).
There is no re-authentication: the token is expected to be long-living,
as it is with service accounts.
"""
import dataclasses
from typing import Optional


class LoginError(Exception):
    """ Raised when the controller cannot login to the API. """


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials and connection flags to use.
    """
    server: str  # e.g. "https://localhost:443"
    ca_path: Optional[str] = None
    ca_data: Optional[bytes] = None
    insecure: Optional[bool] = None
    username: Optional[str] = None
    password: Optional[str] = None
    scheme: Optional[str] = None  # RFC-7235/5.1: e.g. Bearer, Basic, Digest, etc.
    token: Optional[str] = None
    certificate_path: Optional[str] = None
    certificate_data: Optional[bytes] = None
    private_key_path: Optional[str] = None
    private_key_data: Optional[bytes] = None
    default_namespace: Optional[str] = None
