"""
Low-level requests to the K8s API.

All requests go through one aiohttp session of the API context, so they all
carry the same credentials. Every HTTP error status is converted to an
`APIError`. Nothing is retried here.
"""
import json
from typing import Any, AsyncIterator, Mapping, Optional

import aiohttp

from k8soperator.clients import auth, errors
from k8soperator.helpers import typedefs
from k8soperator.structs import configuration


def make_url(context: auth.APIContext, url: str) -> str:
    """ Absolute URLs are used as is; the relative ones are joined to the server. """
    if '://' in url:
        return url
    return f"{context.server.rstrip('/')}/{url.lstrip('/')}"


async def request(
        method: str,
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    """
    Send a request and return the successful response with its body unread.
    """
    url = make_url(context, url)
    if timeout is None:
        timeout = aiohttp.ClientTimeout(total=settings.networking.request_timeout,
                                        sock_connect=settings.networking.connect_timeout)

    logger.debug(f"Requesting the API: {method.upper()} {url}")
    response = await context.session.request(method, url, json=payload, headers=headers,
                                             timeout=timeout)
    await errors.check_response(response)
    return response


async def send(
        method: str,
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        logger: typedefs.Logger,
) -> Any:
    """
    Send a request and return its decoded JSON response.
    """
    response = await request(method, url, payload=payload, headers=headers,
                             context=context, settings=settings, logger=logger)
    async with response:
        return await response.json()


async def post(url: str, **kwargs: Any) -> Any:
    return await send('post', url, **kwargs)


async def put(url: str, **kwargs: Any) -> Any:
    return await send('put', url, **kwargs)


async def patch(url: str, **kwargs: Any) -> Any:
    return await send('patch', url, **kwargs)


async def stream(
        url: str,
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        stopper: Optional[typedefs.Future] = None,
        logger: typedefs.Logger,
) -> AsyncIterator[Any]:
    """
    Yield the decoded JSON lines of a long-lived response until it is closed.

    Once the stopper (a future) is done, the response is closed client-side,
    and the stream ends quietly. The same disconnection without the stopper
    is an error.
    """
    response = await request('get', url, timeout=timeout,
                             context=context, settings=settings, logger=logger)

    def close_response(_: Any) -> None:
        response.close()

    if stopper is not None:
        stopper.add_done_callback(close_response)
    try:
        async with response:
            async for line in iter_jsonlines(response.content):
                yield json.loads(line)
    except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError):
        if stopper is None or not stopper.done():
            raise
    finally:
        if stopper is not None:
            stopper.remove_done_callback(close_response)


async def iter_jsonlines(
        content: aiohttp.StreamReader,
        chunk_size: int = 1024 * 1024,
) -> AsyncIterator[bytes]:
    """
    Split the response's content into lines, skipping the empty ones.

    aiohttp's own line iteration (``async for line in response.content``)
    fails on lines longer than its buffer limit (128 KB), while the objects
    in the watch-streams can be a few MBs long (e.g. secrets, configmaps).
    """
    pending = b''
    async for chunk in content.iter_chunked(chunk_size):
        *lines, pending = (pending + chunk).split(b'\n')
        for line in lines:
            if line.strip():
                yield line
    if pending.strip():
        yield pending
