"""
The raw and the wrapped bodies of the resources and their watch-events.

The "raw" types describe the JSON as decoded from the API responses and
the watch-streams, with no post-processing. Only the fields read by
the runtime are declared; the handlers can read any other fields at runtime.

A "raw input" is a line of the watch-stream as it is; a "raw event" is
the same line once the errors and the unsupported types are filtered out.
"""
import dataclasses
import enum
from typing import Any, List, Mapping, Union

from typing_extensions import Literal, TypedDict

from k8soperator.structs import references

RawInputType = Literal['ADDED', 'MODIFIED', 'DELETED', 'ERROR']
RawEventType = Literal['ADDED', 'MODIFIED', 'DELETED']


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    labels: Mapping[str, str]
    annotations: Mapping[str, str]
    finalizers: List[str]
    resourceVersion: str
    deletionTimestamp: str
    creationTimestamp: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Any
    status: Any


# The object of an ERROR line in the watch-stream (a Status of the API server).
class RawError(TypedDict, total=False):
    apiVersion: str
    kind: str  # Status
    metadata: Mapping[Any, Any]
    code: int
    reason: str
    status: str
    message: str


# One line of the watch-stream, unfiltered.
class RawInput(TypedDict, total=True):
    type: RawInputType
    object: Union[RawBody, RawError]


# One line of the watch-stream with the object of a known type only.
class RawEvent(TypedDict, total=True):
    type: RawEventType
    object: RawBody


class ResourceEventType(str, enum.Enum):
    """ The type of a change of a resource, as named in the watch-stream. """
    ADDED = 'ADDED'
    MODIFIED = 'MODIFIED'
    DELETED = 'DELETED'


@dataclasses.dataclass(frozen=True)
class ResourceEvent:
    """
    An event on a Kubernetes resource, as delivered to the operator's handlers.

    The object is the full body as observed in the watch-stream, including
    its ``spec`` and ``status``. It is shared with nobody, but it is never
    modified by the operator itself either.
    """
    meta: references.ResourceMeta
    type: ResourceEventType
    object: RawBody


def build_event(id: str, raw_event: RawEvent) -> ResourceEvent:
    """
    Convert a raw watch-event into a resource event of the resource type ``id``.

    Fails with `MalformedEventError` if the object has no identifying fields.
    """
    body = raw_event['object']
    return ResourceEvent(
        meta=references.build_meta(id, body),
        type=ResourceEventType(raw_event['type']),
        object=body,
    )
