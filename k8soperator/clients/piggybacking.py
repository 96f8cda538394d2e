"""
Login with the cluster configuration as seen in the environment.

Only the credentials that can be used by a plain HTTP client are extracted
from the well-known sources, in this order of preference:

* The kubeconfig files: ``$KUBECONFIG`` (possibly a few files), or ``~/.kube/config``.
* The service account of the pod, when running in a cluster.

The exec-plugins and the auth-provider refreshes are not supported:
only the access tokens already present in the kubeconfig are used.
"""
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml

from k8soperator.helpers import typedefs
from k8soperator.structs import credentials

DEFAULT_KUBECONFIG = '~/.kube/config'

# https://kubernetes.io/docs/tasks/run-application/access-api-from-pod/
SERVICE_ACCOUNT_DIR = '/var/run/secrets/kubernetes.io/serviceaccount'


def login(*, logger: typedefs.Logger) -> credentials.ConnectionInfo:
    """
    Get the connection info from the first available source, or fail.
    """
    info = login_with_kubeconfig()
    if info is not None:
        logger.debug("Configured via kubeconfig file.")
        return info

    info = login_with_service_account()
    if info is not None:
        logger.debug("Configured in cluster with service account.")
        return info

    raise credentials.LoginError("Cannot authenticate neither in-cluster, nor via kubeconfig.")


def get_kubeconfig_paths() -> List[str]:
    """ The explicitly configured kubeconfigs, or the default one if it exists. """
    env_paths = os.environ.get('KUBECONFIG', '').split(os.pathsep)
    paths = [os.path.expanduser(path.strip()) for path in env_paths if path.strip()]
    if not paths and os.path.exists(os.path.expanduser(DEFAULT_KUBECONFIG)):
        paths = [os.path.expanduser(DEFAULT_KUBECONFIG)]
    return paths


def login_with_kubeconfig(
        paths: Optional[List[str]] = None,
) -> Optional[credentials.ConnectionInfo]:
    """
    Get the credentials of the current context of the kubeconfigs (if any).

    The files are merged as kubectl does: the current context is taken from
    the first file that sets it; the first entry with the same name wins.
    """
    paths = get_kubeconfig_paths() if paths is None else paths
    if not paths:
        return None

    current_context: Optional[str] = None
    sections: Dict[str, Dict[str, Any]] = {'contexts': {}, 'clusters': {}, 'users': {}}
    for path in paths:
        config = read_kubeconfig(path)
        current_context = current_context or config.get('current-context')
        for section, by_name in sections.items():
            item_key = section[:-1]  # e.g. {"name": ..., "context": {...}} in "contexts"
            for item in config.get(section) or []:
                by_name.setdefault(item['name'], item.get(item_key) or {})

    if not current_context:
        raise credentials.LoginError("Current context is not set in kubeconfigs.")
    if current_context not in sections['contexts']:
        raise credentials.LoginError(f"Current context {current_context!r} is not found.")
    context = sections['contexts'][current_context]
    cluster = sections['clusters'].get(context.get('cluster'), {})
    user = sections['users'].get(context.get('user'), {})
    return make_kubeconfig_info(context, cluster, user)


def read_kubeconfig(path: str) -> Mapping[str, Any]:
    try:
        with open(path, encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise credentials.LoginError(f"Cannot read the kubeconfig {path}: {e}") from e
    if config is not None and not isinstance(config, Mapping):
        raise credentials.LoginError(f"The kubeconfig {path} is not a mapping.")
    return config or {}


def make_kubeconfig_info(
        context: Mapping[str, Any],
        cluster: Mapping[str, Any],
        user: Mapping[str, Any],
) -> credentials.ConnectionInfo:
    provider_token = (user.get('auth-provider') or {}).get('config', {}).get('access-token')
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


def login_with_service_account(
        directory: str = SERVICE_ACCOUNT_DIR,
) -> Optional[credentials.ConnectionInfo]:
    """
    Get the credentials of the pod's service account (if it is mounted).
    """
    token = read_secret(os.path.join(directory, 'token'))
    if token is None:
        return None

    namespace = read_secret(os.path.join(directory, 'namespace'))
    ca_path = os.path.join(directory, 'ca.crt')

    # The env vars are injected by K8s into every pod.
    host = os.environ.get('KUBERNETES_SERVICE_HOST')
    port = os.environ.get('KUBERNETES_SERVICE_PORT')
    if host and port:
        host = f'[{host}]' if ':' in host else host  # IPv6
        server = f'https://{host}:{port}'
    else:
        server = 'https://kubernetes.default.svc'

    return credentials.ConnectionInfo(
        server=server,
        ca_path=ca_path if os.path.exists(ca_path) else None,
        token=token or None,
        default_namespace=namespace or None,
    )


def read_secret(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    with open(path, encoding='utf-8') as f:
        return f.read().strip()
