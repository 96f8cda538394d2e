import asyncio
import functools
import json
import logging
import os
import signal
import threading
from types import TracebackType
from typing import Any, List, Optional, Type

import aiohttp

from k8soperator.clients import auth, creating, errors, patching, piggybacking
from k8soperator.engines import loggers
from k8soperator.helpers import typedefs
from k8soperator.reactor import finalizing, queueing, registries, watching
from k8soperator.structs import bodies, configuration, crds, credentials, references
from typing_extensions import Protocol

logger = logging.getLogger('k8soperator')

# The failures of the individual write requests, which do not break the operator.
WRITE_FAILURES = (
    errors.APIError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    json.JSONDecodeError,
    references.MalformedEventError,
    LookupError,
)


class Controller(Protocol):
    """
    The operator's own logic: it decides what to watch and how to react.

    The controller starts the watching in its ``init``, which is called once
    the operator is connected to the cluster. The handlers are usually
    the controller's own methods, so they share the controller's state.
    """

    async def init(self, operator: "Operator") -> None: ...


def terminate_process(exc: BaseException, *, exit_code: int = 1) -> None:
    """
    Terminate the whole process immediately, with no graceful shutdown.

    The queued events are not handled, the open connections are not closed.
    Only the logs are flushed so that the reason of the termination is visible.
    """
    logger.critical(f"Terminating the operator due to a fatal error: {exc}")
    logging.shutdown()
    os._exit(exit_code)


class Operator:
    """
    The operator runtime: the API connection, the watches, and the event queue.

    All the state belongs to this instance only, and is used only from
    the event loop where the operator was started. Nothing is global.

    Usage::

        class MyController:
            async def init(self, operator):
                await operator.watch_resource('example.com', 'v1', 'examples', self.on_event)

            async def on_event(self, event):
                ...

        async with Operator(MyController()) as operator:
            await asyncio.Event().wait()
    """

    def __init__(
            self,
            controller: Controller,
            *,
            settings: Optional[configuration.OperatorSettings] = None,
            logger: Optional[typedefs.Logger] = None,
            connection_info: Optional[credentials.ConnectionInfo] = None,
            fatal: Optional[watching.FatalCallback] = None,
    ) -> None:
        super().__init__()
        self.controller = controller
        self.settings = settings if settings is not None else configuration.OperatorSettings()
        self.logger: typedefs.Logger = logger if logger is not None else logging.getLogger('k8soperator')
        self.registry = registries.ResourceRegistry()
        self._connection_info = connection_info
        self._fatal = fatal if fatal is not None else functools.partial(
            terminate_process, exit_code=self.settings.process.fatal_exit_code)
        self._context: Optional[auth.APIContext] = None
        self._queue: Optional[queueing.EventDispatchQueue] = None

    async def __aenter__(self) -> "Operator":
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    @property
    def context(self) -> auth.APIContext:
        if self._context is None:
            raise RuntimeError("The operator is not started yet.")
        return self._context

    @property
    def queue(self) -> queueing.EventDispatchQueue:
        if self._queue is None:
            raise RuntimeError("The operator is not started yet.")
        return self._queue

    async def start(self) -> None:
        """
        Connect to the cluster and let the controller start its watches.
        """
        self.logger.debug("Starting...")
        info = self._connection_info
        if info is None:
            info = piggybacking.login(logger=self.logger)
        self._context = auth.APIContext(info)
        self._queue = queueing.EventDispatchQueue(max_size=self.settings.queueing.max_size,
                                                  logger=self.logger)
        self._queue.start()
        await self.controller.init(self)

    def stop(self) -> None:
        """
        Abort all the watch-connections. The already queued events are still handled.
        """
        self.logger.debug("Stopping...")
        self.registry.abort_all()

    async def join(self) -> None:
        """
        Wait until all the queued events are handled.
        """
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """
        Stop everything and release the resources (the worker, the HTTP session).
        """
        self.stop()
        tasks = self.registry.tasks()
        if tasks:
            await asyncio.wait(tasks)
        if self._queue is not None:
            await self._queue.close()
        if self._context is not None:
            await self._context.close()

    def get_custom_resource_api_uri(
            self,
            group: str,
            version: str,
            plural: str,
            namespace: references.Namespace = None,
    ) -> str:
        """
        Get the URL of the API of a resource collection (custom or built-in).
        """
        resource = references.Resource(group, version, plural)
        return resource.get_url(server=self.context.server, namespace=namespace)

    async def watch_resource(
            self,
            group: str,
            version: str,
            plural: str,
            handler: queueing.EventHandler,
            namespace: references.Namespace = None,
    ) -> None:
        """
        Watch a resource type and pass all its events to the handler.

        The group is an empty string for the core resources (e.g. pods).
        The handler is invoked for added, modified, or deleted objects,
        one event at a time across all watched resource types.
        """
        resource = references.Resource(group, version, plural)
        registration = self.registry.register(resource, server=self.context.server,
                                              handler=handler)
        registration.task = asyncio.create_task(
            watching.watcher(
                context=self.context,
                settings=self.settings,
                registration=registration,
                namespace=namespace,
                queue=self.queue,
                handler=handler,
                fatal=self._fatal,
                logger=self.logger,
            ),
            name=f'watcher for {resource.id}',
        )
        self.logger.info(f"Watching resource {resource.id}.")

    async def set_resource_status(
            self,
            meta: references.ResourceMeta,
            status: Any,
    ) -> Optional[references.ResourceMeta]:
        """
        Set the status subresource of a resource (if it has one defined).

        Returns the new metadata of the object, or ``None`` if failed.
        """
        object_logger = loggers.ObjectLogger(meta, logger=self.logger)
        object_logger.debug("Setting the status.")
        try:
            body = await patching.replace_status(
                context=self.context,
                settings=self.settings,
                url=self.registry.build_url(meta, 'status'),
                meta=meta,
                status=status,
                logger=object_logger,
            )
            return self.registry.resolve(meta.id, body)
        except WRITE_FAILURES as e:
            object_logger.error(f"Setting the status has failed: {e}")
            return None

    async def patch_resource_status(
            self,
            meta: references.ResourceMeta,
            status: Any,
    ) -> Optional[references.ResourceMeta]:
        """
        Patch the status subresource of a resource (if it has one defined).

        The status is in the JSON Merge Patch format (RFC 7386): only the keys
        present are changed; the keys with ``None`` values are removed.

        Returns the new metadata of the object, or ``None`` if failed.
        """
        object_logger = loggers.ObjectLogger(meta, logger=self.logger)
        object_logger.debug("Patching the status.")
        try:
            body = await patching.patch_status(
                context=self.context,
                settings=self.settings,
                url=self.registry.build_url(meta, 'status'),
                meta=meta,
                status=status,
                logger=object_logger,
            )
            return self.registry.resolve(meta.id, body)
        except WRITE_FAILURES as e:
            object_logger.error(f"Patching the status has failed: {e}")
            return None

    async def set_resource_finalizers(
            self,
            meta: references.ResourceMeta,
            finalizers: List[str],
    ) -> Optional[references.ResourceMeta]:
        """
        Set (or clear) the finalizers of a resource.

        Returns the new metadata of the object, or ``None`` if failed.
        """
        object_logger = loggers.ObjectLogger(meta, logger=self.logger)
        object_logger.debug(f"Setting the finalizers: {finalizers!r}")
        try:
            body = await patching.patch_finalizers(
                context=self.context,
                settings=self.settings,
                url=self.registry.build_url(meta),
                meta=meta,
                finalizers=finalizers,
                logger=object_logger,
            )
            return self.registry.resolve(meta.id, body)
        except WRITE_FAILURES as e:
            object_logger.error(f"Setting the finalizers has failed: {e}")
            return None

    async def handle_resource_finalizer(
            self,
            event: bodies.ResourceEvent,
            finalizer: str,
            delete_action: finalizing.DeleteAction,
    ) -> bool:
        """
        Handle the deletion of a resource with a unique finalizer.

        Call this for every added or modified event. If the resource does not
        have the finalizer yet, it is added. If the finalizer is present and
        the resource is marked for deletion, the delete-action is called,
        and the finalizer is removed, so that K8s can actually delete it.

        Returns ``True`` if no further action is needed; ``False`` if the event
        still needs to be processed by the caller.
        """
        return await finalizing.handle_finalizer(
            event=event,
            finalizer=finalizer,
            delete_action=delete_action,
            set_finalizers=self.set_resource_finalizers,
            logger=loggers.ObjectLogger(event.meta, logger=self.logger),
        )

    async def register_custom_resource_definition(
            self,
            crd_file: str,
    ) -> crds.CustomResourceInfo:
        """
        Register a custom resource definition from its YAML manifest file.

        An already existing definition is not an error, and is not updated.
        Returns the coordinates of the defined resource for watching.
        """
        manifest = crds.read_manifest(crd_file)
        crds.validate_manifest(manifest)
        await creating.create_crd(
            context=self.context,
            settings=self.settings,
            manifest=manifest,
            logger=self.logger,
        )
        return crds.get_info(manifest)


def run(
        controller: Controller,
        *,
        settings: Optional[configuration.OperatorSettings] = None,
        connection_info: Optional[credentials.ConnectionInfo] = None,
        stop_flag: Optional[asyncio.Event] = None,
) -> None:
    """
    Run the operator synchronously until it is stopped by a signal.

    This function should be used to run an operator in normal sync mode,
    typically from ``main()`` or from the CLI.
    """
    asyncio.run(operator(
        controller,
        settings=settings,
        connection_info=connection_info,
        stop_flag=stop_flag,
    ))


async def operator(
        controller: Controller,
        *,
        settings: Optional[configuration.OperatorSettings] = None,
        connection_info: Optional[credentials.ConnectionInfo] = None,
        fatal: Optional[watching.FatalCallback] = None,
        stop_flag: Optional[asyncio.Event] = None,
) -> None:
    """
    Run the operator asynchronously until SIGINT/SIGTERM or the stop-flag.

    On stopping, the watches are aborted, but the queued events are handled
    before exiting.
    """
    loop = asyncio.get_running_loop()
    signal_flag: asyncio.Event = stop_flag if stop_flag is not None else asyncio.Event()

    # On Ctrl+C or pod termination, stop gracefully.
    if threading.current_thread() is threading.main_thread():
        # The signal handlers are not supported by asyncio on Windows.
        try:
            loop.add_signal_handler(signal.SIGINT, signal_flag.set)
            loop.add_signal_handler(signal.SIGTERM, signal_flag.set)
        except NotImplementedError:
            logger.warning("OS signals are ignored: can't add signal handler in Windows.")
    else:
        logger.warning("OS signals are ignored: running not in the main thread.")

    instance = Operator(controller, settings=settings, connection_info=connection_info, fatal=fatal)
    try:
        await instance.start()
        await signal_flag.wait()
        logger.info("Operator is stopping.")
        instance.stop()
        await instance.join()
    finally:
        await instance.close()


async def register_crds(
        crd_files: List[str],
        *,
        settings: Optional[configuration.OperatorSettings] = None,
        connection_info: Optional[credentials.ConnectionInfo] = None,
) -> List[crds.CustomResourceInfo]:
    """
    Register the custom resource definitions once, with no operator running.
    """
    settings = settings if settings is not None else configuration.OperatorSettings()
    manifests = [crds.read_manifest(crd_file) for crd_file in crd_files]
    for manifest in manifests:
        crds.validate_manifest(manifest)

    info = connection_info if connection_info is not None else piggybacking.login(logger=logger)
    context = auth.APIContext(info)
    try:
        for manifest in manifests:
            await creating.create_crd(context=context, settings=settings, manifest=manifest, logger=logger)
    finally:
        await context.close()
    return [crds.get_info(manifest) for manifest in manifests]
