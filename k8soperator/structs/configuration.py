"""
The tunable settings of the operator, with the defaults suitable for most cases.

The settings are grouped by the area they affect: the process, the watching,
the dispatch queue, and the other API requests. The operator takes them
as one `OperatorSettings` object, usually created with no arguments.
"""
import dataclasses
from typing import Optional


@dataclasses.dataclass
class ProcessSettings:
    """
    Settings for the operator's OS process.
    """

    fatal_exit_code: int = 1
    """
    The exit code of the process when a watch-stream fails.

    A failed watch-stream means that the operator's view of the cluster
    can be inconsistent with the actual state. The process exits and relies
    on its supervisor (e.g. K8s itself) to restart it from scratch.
    """


@dataclasses.dataclass
class WatchingSettings:

    reconnect_delay: float = 0.2
    """
    How long to wait before reconnecting when a watch-stream ends normally
    (e.g. due to the server-side timeout). Measured in seconds.
    """

    server_timeout: Optional[float] = None
    """
    The maximum duration of one streaming request, as requested from the server.
    If ``None``, the server decides when to close the stream.
    """

    client_timeout: Optional[float] = None
    """
    The client-side limit of one streaming request in total, in seconds.
    """

    connect_timeout: Optional[float] = None
    """
    The limit of establishing a connection for a streaming request, in seconds.
    If ``None``, the connection timeout of the other requests is used.
    """


@dataclasses.dataclass
class QueueingSettings:

    max_size: Optional[int] = None
    """
    How many events can wait in the dispatch queue for their handlers.

    If ``None`` (the default), the queue is unbounded: the watch-streams never
    wait for the handlers, but a slow handler makes the queue grow in memory.

    If set, the watch-streams stop reading new events while the queue is full.
    """


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for the API requests (except watching; see `WatchingSettings`).
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for the TCP connection for the API requests.
    """


@dataclasses.dataclass
class OperatorSettings:
    process: ProcessSettings = dataclasses.field(default_factory=ProcessSettings)
    watching: WatchingSettings = dataclasses.field(default_factory=WatchingSettings)
    queueing: QueueingSettings = dataclasses.field(default_factory=QueueingSettings)
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
