"""
The credentials of one cluster, as used by the HTTP client.

Only what a generic HTTP client can use is kept: the server URL, the TLS
settings (the CA, the client certificate and its key), the ``Authorization``
header (a token with its scheme, or the basic auth), and the default namespace.
The values are taken from the kubeconfig or the service account as is:
the paths are not read and the data are not decoded until they are used.

.. seealso::
    :mod:`k8soperator.clients.piggybacking` and :mod:`k8soperator.clients.auth`.
"""
import dataclasses
from typing import Optional, Union


class LoginError(Exception):
    """ Raised when the operator cannot login to the API. """


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials and connection flags to use.
    """
    server: str  # e.g. "https://localhost:443"
    ca_path: Optional[str] = None
    ca_data: Optional[Union[str, bytes]] = None
    insecure: Optional[bool] = None
    username: Optional[str] = None
    password: Optional[str] = None
    scheme: Optional[str] = None  # RFC-7235/5.1: e.g. Bearer, Basic, Digest, etc.
    token: Optional[str] = None
    certificate_path: Optional[str] = None
    certificate_data: Optional[Union[str, bytes]] = None
    private_key_path: Optional[str] = None
    private_key_data: Optional[Union[str, bytes]] = None
    default_namespace: Optional[str] = None
