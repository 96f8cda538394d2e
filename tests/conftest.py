import asyncio
import contextlib
import dataclasses
import functools
import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

import aiohttp.test_utils
import aiohttp.web
import pytest

from k8soperator.clients.auth import APIContext
from k8soperator.structs.configuration import OperatorSettings
from k8soperator.structs.credentials import ConnectionInfo
from k8soperator.structs.references import Resource


@pytest.fixture()
def resource():
    """ A custom resource served by the fake API. """
    return Resource('k8soperator.dev', 'v1', 'operatorexamples')


@pytest.fixture(params=['ns', None], ids=['namespaced', 'cluster'])
def namespace(request):
    return request.param


@pytest.fixture()
def settings():
    return OperatorSettings()


@pytest.fixture()
def logger():
    return logging.getLogger('k8soperator.tests')


#
# A fake K8s API server. Only the requests and responses matter, not the actual K8s logic.
#


# A marker for the watch-streams that never end until the test is over.
HANG = object()


@dataclasses.dataclass(frozen=True)
class RecordedRequest:
    method: str
    path: str
    query: Mapping[str, str]
    headers: Mapping[str, str]
    data: Any


class FakeAPI:
    """
    Responds with the queued responses per method & path, and records the requests.

    A response can be:

    * a dict -- sent as a JSON response with HTTP 200;
    * an int -- an HTTP error with a K8s ``Status`` payload;
    * a list -- a watch-stream with these events (one JSON line per event);
    * ``HANG`` -- a watch-stream that never ends (until the test is over);
    * a coroutine function -- called with the request to make the response.

    The responses are used once each, in the order they were added.
    When none are left, the watch-streams hang, other requests fail with 404.
    """

    def __init__(self) -> None:
        super().__init__()
        self.requests: List[RecordedRequest] = []
        self.responses: Dict[Tuple[str, str], List[Any]] = {}
        self.closing = asyncio.Event()
        self.app = aiohttp.web.Application()
        self.app.router.add_route('*', '/{tail:.*}', self.handle)
        self.server = aiohttp.test_utils.TestServer(self.app)

    @property
    def url(self) -> str:
        return f'http://{self.server.host}:{self.server.port}'

    def add(self, method: str, path: str, response: Any) -> None:
        self.responses.setdefault((method.upper(), path), []).append(response)

    def add_stream(self, path: str, events: List[Any], *, hang: bool = False) -> None:
        """ A watch-stream with these events, which optionally hangs after them. """
        self.add('get', path, functools.partial(self._stream, events=events, hang=hang))

    def find(self, method: str, path: Optional[str] = None) -> List[RecordedRequest]:
        return [request for request in self.requests
                if request.method == method.upper() and (path is None or request.path == path)]

    async def handle(self, request: aiohttp.web.Request) -> aiohttp.web.StreamResponse:
        data = json.loads(await request.text()) if request.can_read_body else None
        self.requests.append(RecordedRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            headers=dict(request.headers),
            data=data,
        ))

        queue = self.responses.get((request.method, request.path), [])
        if queue:
            response = queue.pop(0)
        elif request.query.get('watch') == 'true':
            response = HANG
        else:
            response = 404

        if response is HANG:
            return await self._stream(request, [], hang=True)
        elif isinstance(response, list):
            return await self._stream(request, response)
        elif isinstance(response, int):
            payload = {'apiVersion': 'v1', 'kind': 'Status', 'status': 'Failure',
                       'code': response, 'message': f"Simulated error {response}"}
            return aiohttp.web.json_response(payload, status=response)
        elif callable(response):
            return await response(request)
        else:
            return aiohttp.web.json_response(response)

    async def _stream(
            self,
            request: aiohttp.web.Request,
            events: List[Any],
            hang: bool = False,
    ) -> aiohttp.web.StreamResponse:
        response = aiohttp.web.StreamResponse()
        response.content_type = 'application/json'
        await response.prepare(request)
        for event in events:
            await response.write(json.dumps(event).encode('utf-8') + b'\n')
        if hang:
            await self.closing.wait()
        with contextlib.suppress(ConnectionError):
            await response.write_eof()
        return response


@pytest.fixture()
async def fake_api():
    api = FakeAPI()
    await api.server.start_server()
    try:
        yield api
    finally:
        api.closing.set()
        await api.server.close()


@pytest.fixture()
def connection_info(fake_api):
    return ConnectionInfo(server=fake_api.url)


@pytest.fixture()
async def context(connection_info):
    context = APIContext(connection_info)
    try:
        yield context
    finally:
        await context.close()


@pytest.fixture()
def make_body():
    """ A minimal valid object of the test resource. """
    def make_body_fn(name='name1', namespace='ns', resource_version='1', **metadata):
        meta = dict(name=name, resourceVersion=resource_version, **metadata)
        if namespace is not None:
            meta['namespace'] = namespace
        return {'apiVersion': 'k8soperator.dev/v1', 'kind': 'OperatorExample', 'metadata': meta}
    return make_body_fn


#
# Measuring the time.
#


class Timer:
    """
    Measures the wall-clock time of a code block, or of everything so far if still inside it.

    Usage::

        with timer:
            await something()
        assert timer.seconds < 1.0
    """

    def __init__(self) -> None:
        super().__init__()
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    @property
    def seconds(self) -> float:
        if self._started is None:
            raise RuntimeError("The timer was never started.")
        return (self._stopped or time.perf_counter()) - self._started

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._stopped = time.perf_counter()


@pytest.fixture()
def timer():
    return Timer()
