"""
Rudimentary logins to the Kubernetes API from the well-known sources.

The controller is not a client library, and avoids bringing too much logic
for proper authentication, especially all the complex auth-providers.
Two sources are supported: the in-cluster service account (preferred,
as the controller usually runs in the cluster), and the kubeconfig files
(for development from outside of the cluster).

.. seealso::
    :mod:`credentials` and :class:`auth.APIContext`.
"""
import os
from typing import Any, Dict, Optional

import yaml

from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import credentials

# As per https://kubernetes.io/docs/tasks/run-application/access-api-from-pod/
SERVICE_ACCOUNT_DIR = '/var/run/secrets/kubernetes.io/serviceaccount'


def login(
        *,
        logger: typedefs.Logger,
) -> credentials.ConnectionInfo:
    """
    Retrieve the credentials from the first available source, or fail.
    """
    info = login_with_service_account()
    if info is not None:
        logger.debug("Client is configured in cluster with service account.")
        return info

    info = login_with_kubeconfig()
    if info is not None:
        logger.debug("Client is configured via kubeconfig file.")
        return info

    raise credentials.LoginError("Cannot authenticate neither in-cluster, nor via kubeconfig.")


def login_with_service_account(**_: Any) -> Optional[credentials.ConnectionInfo]:
    """
    A minimalistic login handler that can get raw data from a service account.

    Authentication capabilities can be limited to keep the code short & simple.
    No parsing or sophisticated multi-step token retrieval is performed.
    """
    token_path = os.path.join(SERVICE_ACCOUNT_DIR, 'token')
    ns_path = os.path.join(SERVICE_ACCOUNT_DIR, 'namespace')
    ca_path = os.path.join(SERVICE_ACCOUNT_DIR, 'ca.crt')

    if os.path.exists(token_path):
        with open(token_path, encoding='utf-8') as f:
            token = f.read().strip()

        namespace: Optional[str] = None
        if os.path.exists(ns_path):
            with open(ns_path, encoding='utf-8') as f:
                namespace = f.read().strip()

        return credentials.ConnectionInfo(
            server='https://kubernetes.default.svc',
            ca_path=ca_path if os.path.exists(ca_path) else None,
            token=token or None,
            default_namespace=namespace or None,
        )
    else:
        return None


def login_with_kubeconfig(**_: Any) -> Optional[credentials.ConnectionInfo]:
    """
    A minimalistic login handler that can get raw data from a kubeconfig file.

    Authentication capabilities can be limited to keep the code short & simple.
    No parsing or sophisticated multi-step token retrieval is performed.
    """

    # As per https://kubernetes.io/docs/concepts/configuration/organize-cluster-access-kubeconfig/
    kubeconfig = os.environ.get('KUBECONFIG')
    if not kubeconfig and os.path.exists(os.path.expanduser('~/.kube/config')):
        kubeconfig = '~/.kube/config'
    if not kubeconfig:
        return None

    paths = [path.strip() for path in kubeconfig.split(os.pathsep)]
    paths = [os.path.expanduser(path) for path in paths if path]

    # As prescribed: if the file is absent or non-deserialisable, then fail. The first value wins.
    current_context: Optional[str] = None
    contexts: Dict[Any, Any] = {}
    clusters: Dict[Any, Any] = {}
    users: Dict[Any, Any] = {}
    for path in paths:

        with open(path, encoding='utf-8') as f:
            config = yaml.safe_load(f.read()) or {}

        if current_context is None:
            current_context = config.get('current-context')
        for item in config.get('contexts', []):
            if item['name'] not in contexts:
                contexts[item['name']] = item.get('context') or {}
        for item in config.get('clusters', []):
            if item['name'] not in clusters:
                clusters[item['name']] = item.get('cluster') or {}
        for item in config.get('users', []):
            if item['name'] not in users:
                users[item['name']] = item.get('user') or {}

    # Once fully parsed, use the current context only.
    if current_context is None:
        raise credentials.LoginError('Current context is not set in kubeconfigs.')
    if current_context not in contexts:
        raise credentials.LoginError(f'Current context {current_context!r} is not defined.')
    context = contexts[current_context]
    cluster = clusters.get(context.get('cluster'), {})
    user = users.get(context.get('user'), {})

    # We do not make a fake API request to refresh the auth-provider's token.
    provider_token = user.get('auth-provider', {}).get('config', {}).get('access-token')

    # Map the retrieved fields into the credentials object.
    return credentials.ConnectionInfo(
        server=cluster.get('server'),
        ca_path=cluster.get('certificate-authority'),
        ca_data=cluster.get('certificate-authority-data'),
        insecure=cluster.get('insecure-skip-tls-verify'),
        certificate_path=user.get('client-certificate'),
        certificate_data=user.get('client-certificate-data'),
        private_key_path=user.get('client-key'),
        private_key_data=user.get('client-key-data'),
        username=user.get('username'),
        password=user.get('password'),
        token=user.get('token') or provider_token,
        default_namespace=context.get('namespace'),
    )
