"""
K8s API errors.

Every HTTP error status of the API is converted to `APIError` or one of its
subclasses for the statuses that the operator distinguishes: e.g., HTTP 409
is "already exists" for the CRD registration, but "outdated resource version"
for the status and finalizer writes.

If the API server explains the error with a ``Status`` object, its message
is exposed; any other payload is ignored, as it might contain sensitive data.

The networking errors are not converted: they come from ``aiohttp`` as is.
"""
import collections.abc
import json
from typing import Any, Dict, Optional, Type

import aiohttp
from typing_extensions import TypedDict


# https://kubernetes.io/docs/reference/kubernetes-api/common-definitions/status/
class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: str
    code: int
    status: str
    reason: str
    message: str
    details: Dict[str, Any]


class APIError(Exception):
    """ An HTTP error status of a K8s API request. """

    def __init__(
            self,
            payload: Optional[RawStatus],
            *,
            status: int,
            method: Optional[str] = None,
            url: Optional[str] = None,
    ) -> None:
        super().__init__(payload.get('message') if payload else None, payload)
        self.status = status
        self.method = method
        self.url = url
        self.payload = payload

    def __str__(self) -> str:
        return f"({self.status}) {self.message or 'no details'}"

    @property
    def code(self) -> Optional[int]:
        return self.payload.get('code') if self.payload else None

    @property
    def reason(self) -> Optional[str]:
        return self.payload.get('reason') if self.payload else None

    @property
    def message(self) -> Optional[str]:
        return self.payload.get('message') if self.payload else None

    @property
    def details(self) -> Optional[Dict[str, Any]]:
        return self.payload.get('details') if self.payload else None


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


ERRORS_BY_STATUS: Dict[int, Type[APIError]] = {
    401: APIUnauthorizedError,
    403: APIForbiddenError,
    404: APINotFoundError,
    409: APIConflictError,
}


async def check_response(response: aiohttp.ClientResponse) -> None:
    """
    Raise an `APIError` (or its subclass) if the response is an HTTP error.

    The body is read here, so the error response is released afterwards.
    """
    if response.status < 400:
        return

    payload: Optional[RawStatus]
    try:
        payload = await response.json(content_type=None)
    except (json.JSONDecodeError, UnicodeDecodeError, aiohttp.ClientConnectionError):
        payload = None
    if not isinstance(payload, collections.abc.Mapping) or payload.get('kind') != 'Status':
        payload = None

    cls = ERRORS_BY_STATUS.get(response.status, APIError)
    try:
        response.raise_for_status()
    except aiohttp.ClientResponseError as e:
        raise cls(payload, status=response.status,
                  method=response.method, url=str(response.url)) from e
