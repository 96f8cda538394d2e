"""
Watch-streams of the resource types.

A watch-request is a long-lived HTTP response with one JSON event per line.
The API server closes it from time to time (e.g. on its own timeouts); then,
a new watch-request is made to the same URL after a short delay.

The watching starts from "now" every time: neither the objects are listed,
nor the last seen resource version is used to resume. So, every event that
is received is yielded once, and the events that happen between the requests
are not seen at all.
"""
import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, cast

import aiohttp

from k8soperator.clients import api, auth
from k8soperator.helpers import typedefs
from k8soperator.structs import bodies, configuration, references

logger = logging.getLogger(__name__)

# Receives the abort handle (a future) of every newly opened watch-request.
StopperCallback = Callable[[typedefs.Future], None]

KNOWN_EVENT_TYPES = frozenset({'ADDED', 'MODIFIED', 'DELETED'})


class WatchingError(Exception):
    """
    Raised when the watch-stream reports an error instead of an event.
    """


async def infinite_watch(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        on_connect: Optional[StopperCallback] = None,
        _iterations: Optional[int] = None,  # for tests only: a limited number of requests
) -> AsyncIterator[bodies.RawEvent]:
    """
    Yield the watch-events across all the watch-requests, one after another.

    It ends only when stopped via the stopper of the current request.
    Any error of the stream or of the request is raised as is.
    """
    scope = f'in {namespace!r}' if namespace is not None else 'cluster-wide'
    logger.debug(f"Starting the watch-stream for {resource.id} {scope}.")
    try:
        while _iterations is None or _iterations > 0:
            if _iterations is not None:
                _iterations -= 1

            stopper: typedefs.Future = asyncio.get_running_loop().create_future()
            if on_connect is not None:
                on_connect(stopper)

            async for raw_event in watch_objs(context=context, settings=settings,
                                              resource=resource, namespace=namespace,
                                              stopper=stopper):
                yield raw_event

            if stopper.done():
                break

            logger.debug(f"The watch-stream for {resource.id} {scope} has ended. Reconnecting.")
            await asyncio.sleep(settings.watching.reconnect_delay)
    finally:
        logger.debug(f"Stopping the watch-stream for {resource.id} {scope}.")


async def watch_objs(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        stopper: Optional[typedefs.Future] = None,
) -> AsyncIterator[bodies.RawEvent]:
    """
    Yield the events of one watch-request until it is closed by either side.
    """
    url = resource.get_url(namespace=namespace, params=make_watch_params(settings))
    async for raw_input in api.stream(url, context=context, settings=settings, stopper=stopper,
                                      timeout=make_watch_timeout(settings), logger=logger):
        raw_event = parse_event(raw_input)
        if raw_event is not None:
            yield raw_event


def make_watch_params(settings: configuration.OperatorSettings) -> Dict[str, str]:
    params = {'watch': 'true'}
    if settings.watching.server_timeout is not None:
        params['timeoutSeconds'] = str(int(settings.watching.server_timeout))
    return params


def make_watch_timeout(settings: configuration.OperatorSettings) -> aiohttp.ClientTimeout:
    """ The client-side timeouts: the whole stream is not limited unless configured. """
    connect_timeout = settings.watching.connect_timeout
    if connect_timeout is None:
        connect_timeout = settings.networking.connect_timeout
    if connect_timeout is None:
        connect_timeout = settings.networking.request_timeout
    return aiohttp.ClientTimeout(total=settings.watching.client_timeout,
                                 sock_connect=connect_timeout)


def parse_event(raw_input: Mapping[str, Any]) -> Optional[bodies.RawEvent]:
    """
    Accept the object events, ignore the unknown ones, and fail on the errors.
    """
    raw_type = raw_input.get('type')
    if raw_type == 'ERROR':
        raise WatchingError(f"Error in the watch-stream: {raw_input.get('object')}")
    elif raw_type not in KNOWN_EVENT_TYPES:
        logger.warning(f"Ignoring an unsupported event type: {raw_input!r}")
        return None
    else:
        return cast(bodies.RawEvent, raw_input)
