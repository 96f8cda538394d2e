"""
The deletion protocol with the finalizers.

An object cannot be deleted by K8s while it has at least one finalizer.
The operator puts its own finalizer onto every object it sees (if absent),
and removes it only after its delete-action is done for that object.
So, the operator never misses the deletion of an object, even if the deletion
happens while the operator is down: the object waits for the operator.

The state machine is driven by the added/modified events only: the deletion
is seen as a modification which sets the ``deletionTimestamp`` on the object.
The actual DELETED events are rarely seen, since the objects are deleted only
once the operator removes its finalizer -- i.e. when it is already done.
"""
from typing import Awaitable, Callable, List

from k8soperator.helpers import typedefs
from k8soperator.structs import bodies, finalizers, references

DeleteAction = Callable[[bodies.ResourceEvent], Awaitable[None]]
FinalizersWriter = Callable[[references.ResourceMeta, List[str]], Awaitable[object]]


async def handle_finalizer(
        *,
        event: bodies.ResourceEvent,
        finalizer: str,
        delete_action: DeleteAction,
        set_finalizers: FinalizersWriter,
        logger: typedefs.Logger,
) -> bool:
    """
    Put or remove the finalizer depending on the object's deletion state.

    Returns ``True`` if the event is fully processed here and the caller
    should do nothing else with it; ``False`` if the caller should process
    the event with its own logic (e.g. reconcile the object's spec).
    """
    body = event.object
    meta = event.meta
    logger.debug(f"Handling finalizer {finalizer} for {meta.namespace or 'default'}/{meta.name}.")

    kinds = (bodies.ResourceEventType.ADDED, bodies.ResourceEventType.MODIFIED)
    if not body.get('metadata') or event.type not in kinds:
        logger.debug(f"No metadata found in {event.type.value} event, "
                     f"or event is not an added or modified.")
        return False

    deletion_ongoing = finalizers.is_deletion_ongoing(body)
    deletion_blocked = finalizers.is_deletion_blocked(body, finalizer)

    # Make sure our finalizer is added when the resource is first seen.
    if not deletion_ongoing and not deletion_blocked:
        await set_finalizers(meta, finalizers.block_deletion(body, finalizer))
        return True

    # Marked for deletion with our finalizer still set: clean up, then release the object.
    # If the delete-action fails, the finalizer stays, and the object stays too.
    elif deletion_ongoing and deletion_blocked:
        await delete_action(event)
        await set_finalizers(meta, finalizers.allow_deletion(body, finalizer))
        return True

    # Marked for deletion and already released by us: nothing to do but to wait.
    elif deletion_ongoing:
        return True

    # A regular business event: the caller should process it.
    else:
        return False
