"""
The API context: one HTTP session with the credentials of the active cluster.

Both the watch-streams and the writes are sent via the same session, so they
all carry the same credentials: the ``Authorization`` header (a bearer token
or another scheme), the HTTP basic auth, the client certificate for mTLS,
and the server verification with the cluster's CA (or none if insecure).
"""
import base64
import contextlib
import ssl
import tempfile
from typing import Dict, Optional, Union

import aiohttp

from k8soperator.helpers import versions
from k8soperator.structs import credentials

PemData = Union[str, bytes]


class APIContext:
    """
    An aiohttp session, and the environment info for building the URLs.

    It is created once per operator, and must be used and closed
    in the event loop where it was created.
    """

    session: aiohttp.ClientSession
    server: str
    default_namespace: Optional[str]

    def __init__(self, info: credentials.ConnectionInfo) -> None:
        super().__init__()
        self.session = make_session(info)
        self.server = info.server
        self.default_namespace = info.default_namespace

    async def close(self) -> None:
        await self.session.close()


def make_session(info: credentials.ConnectionInfo) -> aiohttp.ClientSession:
    auth: Optional[aiohttp.BasicAuth] = None
    if info.username and info.password:
        auth = aiohttp.BasicAuth(info.username, info.password)
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(limit=0, ssl=make_ssl_context(info)),
        headers=make_headers(info),
        auth=auth,
    )


def make_headers(info: credentials.ConnectionInfo) -> Dict[str, str]:
    headers = {'User-Agent': versions.user_agent()}
    if info.scheme and info.token:
        headers['Authorization'] = f'{info.scheme} {info.token}'
    elif info.scheme:
        headers['Authorization'] = info.scheme
    elif info.token:
        headers['Authorization'] = f'Bearer {info.token}'
    return headers


def make_ssl_context(info: credentials.ConnectionInfo) -> ssl.SSLContext:
    """
    Verify the server with the CA (if any), and identify the client with its certificate.

    The certificate and the key are loaded only from the files, so the inline
    data is written to the temporary files, which exist only while loading.
    """
    check_exclusive(info.ca_path, info.ca_data, 'CA')
    context = ssl.create_default_context(
        purpose=ssl.Purpose.SERVER_AUTH,
        cafile=info.ca_path,
        cadata=decode_to_pem(info.ca_data) if info.ca_data else None,
    )

    with contextlib.ExitStack() as stack:
        cert_path = materialize(stack, info.certificate_path, info.certificate_data, 'certificate')
        pkey_path = materialize(stack, info.private_key_path, info.private_key_data, 'private key')
        if cert_path and pkey_path:
            context.load_cert_chain(certfile=cert_path, keyfile=pkey_path)

    if info.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def check_exclusive(path: Optional[str], data: Optional[PemData], what: str) -> None:
    if path and data:
        raise credentials.LoginError(f"Both {what} path & data are set. Need only one.")


def materialize(
        stack: contextlib.ExitStack,
        path: Optional[str],
        data: Optional[PemData],
        what: str,
) -> Optional[str]:
    """ Get a path to the file with the PEM data, creating a temporary one if needed. """
    check_exclusive(path, data, what)
    if not data:
        return path
    tmp = stack.enter_context(tempfile.NamedTemporaryFile(buffering=0))
    tmp.write(decode_to_pem(data).encode('ascii'))
    return tmp.name


def decode_to_pem(data: PemData) -> str:
    """ Kubeconfigs keep the PEM data base64-encoded; the CLI options do not. """
    text = data.decode('ascii') if isinstance(data, bytes) else data
    if text.startswith('-----BEGIN '):
        return text
    return base64.b64decode(text).decode('ascii')
