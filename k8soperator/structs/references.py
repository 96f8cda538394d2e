import dataclasses
import urllib.parse
from typing import Any, Mapping, NamedTuple, Optional

# An optional namespace: ``None`` means cluster-wide (or cluster-scoped resources).
Namespace = Optional[str]


class MalformedEventError(Exception):
    """ Raised when an object lacks the fields needed to identify it. """

    def __init__(self, id: str) -> None:
        super().__init__(f"Malformed event object for {id!r}")
        self.id = id


class Resource(NamedTuple):
    """
    An immutable reference to a resource type (not to an individual object).

    The group is empty for the core resources (e.g. pods, configmaps).
    """
    group: str
    version: str
    plural: str

    @property
    def name(self) -> str:
        return f"{self.plural}.{self.group}" if self.group else self.plural

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def id(self) -> str:
        return make_id(self.plural, self.api_version)

    def get_url(
            self,
            *,
            server: Optional[str] = None,
            namespace: Namespace = None,
            name: Optional[str] = None,
            subresource: Optional[str] = None,
            params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        The URL of the collection, or of a named object in it (maybe its subresource).

        The URL is relative to the server unless the server is specified.
        """
        if subresource is not None and name is None:
            raise ValueError("Subresources can be used only with specific resources by their name.")

        path = self.get_collection_path(namespace)
        for part in (name, subresource):
            if part is not None:
                path += f"/{urllib.parse.quote(part)}"
        if params:
            path += f"?{urllib.parse.urlencode(params)}"
        return path if server is None else f"{server.rstrip('/')}{path}"

    def get_collection_path(self, namespace: Namespace = None) -> str:
        prefix = f"/apis/{self.group}/{self.version}" if self.group else f"/api/{self.version}"
        scope = f"/namespaces/{urllib.parse.quote(namespace)}" if namespace is not None else ""
        return f"{prefix}{scope}/{self.plural}"


# The built-in resource used to register the custom resources.
CRD_RESOURCE = Resource('apiextensions.k8s.io', 'v1', 'customresourcedefinitions')


@dataclasses.dataclass(frozen=True)
class ResourceMeta:
    """
    The identifying information of one object of a resource type.

    The ``id`` identifies the resource type the object was received for,
    and is the same for all objects (and events) of that resource type.
    The ``resource_version`` is what the object was seen with; it is sent
    back on writes for the API server's optimistic concurrency checks.
    """
    id: str
    name: str
    resource_version: str
    api_version: str
    kind: str
    namespace: Namespace = None


def make_id(plural: str, api_version: str) -> str:
    return f'{plural}.{api_version}'


def build_meta(id: str, body: Mapping[str, Any]) -> ResourceMeta:
    """
    Extract the identifying information from an object's body, or fail.
    """
    metadata = body.get('metadata') or {}
    name = metadata.get('name')
    resource_version = metadata.get('resourceVersion')
    api_version = body.get('apiVersion')
    kind = body.get('kind')
    if not name or not resource_version or not api_version or not kind:
        raise MalformedEventError(id)
    return ResourceMeta(
        id=id,
        name=name,
        namespace=metadata.get('namespace'),
        resource_version=resource_version,
        api_version=api_version,
        kind=kind,
    )
