"""
Registries of the watched resource types.

Every resource type is registered once when its watching begins.
The registration keeps the handler of its events and the way of building
the URLs of its objects (from the group, version, plural known only at
registration time), so that the writes need only the objects' metadata later on.
"""
import dataclasses
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from k8soperator.helpers import typedefs
from k8soperator.reactor import queueing
from k8soperator.structs import references

# Builds the URL of a resource collection for a namespace (``None`` for cluster-wide).
PathBuilder = Callable[[references.Namespace], str]


@dataclasses.dataclass
class WatchRegistration:
    """
    The runtime state of one watched resource type.

    The handler receives all the events of this resource type.
    The stopper is an abort handle of the currently open watch-connection;
    it is replaced on every reconnection. The task is the watcher itself.
    """
    resource: references.Resource
    path_builder: PathBuilder
    handler: Optional[queueing.EventHandler] = None
    stopper: Optional[typedefs.Future] = None
    task: Optional[typedefs.Task] = None

    def replace_stopper(self, stopper: typedefs.Future) -> None:
        self.stopper = stopper

    def abort(self) -> None:
        if self.stopper is not None and not self.stopper.done():
            self.stopper.set_result(None)
        if self.task is not None and not self.task.done():
            self.task.cancel()


class ResourceRegistry:
    """
    The path builders and the live watches of one operator, by resource type id.
    """

    def __init__(self) -> None:
        super().__init__()
        self._registrations: Dict[str, WatchRegistration] = {}
        self._superseded: List[WatchRegistration] = []

    def __contains__(self, id: object) -> bool:
        return id in self._registrations

    def __iter__(self) -> Iterator[WatchRegistration]:
        return iter(self._registrations.values())

    def register(
            self,
            resource: references.Resource,
            *,
            server: str,
            handler: Optional[queueing.EventHandler] = None,
    ) -> WatchRegistration:
        """
        Register (or re-register) the resource type, overwriting its path builder
        and its handler.

        The previous watch of the same resource type, if any, is kept running
        until the operator is stopped.
        """
        def path_builder(namespace: references.Namespace) -> str:
            return resource.get_url(server=server, namespace=namespace)

        previous = self._registrations.get(resource.id)
        if previous is not None:
            self._superseded.append(previous)
        registration = WatchRegistration(resource=resource, path_builder=path_builder,
                                         handler=handler)
        self._registrations[resource.id] = registration
        return registration

    def abort_all(self) -> None:
        for registration in self._superseded + list(self._registrations.values()):
            registration.abort()

    def tasks(self) -> List[typedefs.Task]:
        registrations = self._superseded + list(self._registrations.values())
        return [registration.task for registration in registrations if registration.task is not None]

    def resolve(self, id: str, body: Mapping[str, Any]) -> references.ResourceMeta:
        return references.build_meta(id, body)

    def build_url(
            self,
            meta: references.ResourceMeta,
            subresource: Optional[str] = None,
    ) -> str:
        try:
            registration = self._registrations[meta.id]
        except KeyError:
            raise LookupError(f"Resource {meta.id!r} is not watched; its URL is unknown.") from None

        parts = [registration.path_builder(meta.namespace), meta.name]
        if subresource is not None:
            parts.append(subresource)
        return '/'.join(parts)
