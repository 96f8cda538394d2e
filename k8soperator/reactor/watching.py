"""
Watching the resources and feeding their events to the dispatch queue.

One watcher is started per registered resource type. It converts the raw
watch-events to resource events and queues them with the handler -- as fast
as possible, without waiting for the handler (and its API calls) to finish.

Any failure of the watch-stream is fatal for the operator: the local view
of the cluster might be inconsistent with the server-side state, and there is
no resync logic to restore it. Instead, the operator reports the failure
to the fatal callback, which terminates the process by default; the process
supervisor (e.g. K8s itself) starts it again from scratch.
"""
import asyncio
from typing import Callable

from k8soperator.clients import auth, watching
from k8soperator.helpers import typedefs
from k8soperator.reactor import queueing, registries
from k8soperator.structs import bodies, configuration, references

# Is called with the error when a watch-stream fails. Normally, it never returns.
FatalCallback = Callable[[BaseException], None]


async def watcher(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        registration: registries.WatchRegistration,
        namespace: references.Namespace,
        queue: queueing.EventDispatchQueue,
        handler: queueing.EventHandler,
        fatal: FatalCallback,
        logger: typedefs.Logger,
) -> None:
    """
    Watch one resource type forever, until stopped or failed.
    """
    resource = registration.resource
    try:
        stream = watching.infinite_watch(
            context=context,
            settings=settings,
            resource=resource,
            namespace=namespace,
            on_connect=registration.replace_stopper,
        )
        async for raw_event in stream:
            event = bodies.build_event(resource.id, raw_event)
            await queue.put(event, handler)

    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"Watch on resource {resource.id} failed: {e!r}")
        fatal(e)
