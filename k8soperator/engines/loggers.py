"""
Logging setup and the per-object loggers.

The messages about specific objects (e.g. their status and finalizer writes)
are logged via `ObjectLogger`: it attaches the object's reference to the log
records as the ``k8s_ref`` extra field. The formatters render the reference
as a ``[namespace/name]`` prefix of the message in the text logs, or as
a separate key in the JSON logs (optionally, also with the prefix).

The records without the reference (e.g. from the watchers) are not prefixed.
"""
import asyncio
import copy
import enum
import logging
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple, Union

from pythonjsonlogger import core as jsonlogger_core
from pythonjsonlogger import json as jsonlogger

from k8soperator.helpers import typedefs
from k8soperator.structs import references

DEFAULT_JSON_REFKEY = 'object'

# The loggers of the libraries, which are too noisy unless debugging.
NOISY_LOGGERS = ['asyncio']


class LogFormat(enum.Enum):
    """ Log formats, as specified on CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = enum.auto()


def make_ref(meta: references.ResourceMeta) -> Dict[str, str]:
    """ An object reference as in K8s API, with only the fields known from the metadata. """
    ref = {'apiVersion': meta.api_version, 'kind': meta.kind, 'name': meta.name}
    if meta.namespace:
        ref['namespace'] = meta.namespace
    return ref


def make_prefix(ref: Mapping[str, str]) -> str:
    namespace = ref.get('namespace')
    name = ref.get('name', '')
    return f"[{namespace}/{name}]" if namespace else f"[{name}]"


def get_severity(levelno: int) -> str:
    """ The severity names as understood by most log collectors. """
    return ("debug" if levelno <= logging.DEBUG else
            "info" if levelno <= logging.INFO else
            "warn" if levelno <= logging.WARNING else
            "error" if levelno <= logging.ERROR else
            "fatal")


class ObjectFormatter(logging.Formatter):
    """
    A base for the operator's own formatters, optionally prefixing the messages.
    """

    def __init__(self, *args: Any, prefixed: bool = False, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.prefixed = prefixed

    def format(self, record: logging.LogRecord) -> str:
        ref = getattr(record, 'k8s_ref', None)
        if self.prefixed and ref:
            record = copy.copy(record)  # other handlers must see the original message
            record.msg = f"{make_prefix(ref)} {record.msg}"
        return super().format(record)


class ObjectTextFormatter(ObjectFormatter):
    pass


class ObjectJsonFormatter(ObjectFormatter, jsonlogger.JsonFormatter):

    def __init__(self, *args: Any, refkey: Optional[str] = None, **kwargs: Any) -> None:
        reserved_attrs = set(kwargs.pop('reserved_attrs', jsonlogger_core.RESERVED_ATTRS))
        kwargs['reserved_attrs'] = reserved_attrs | {'k8s_ref'}
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, **kwargs)
        self.refkey = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: MutableMapping[str, Any],
            record: logging.LogRecord,
            message_dict: MutableMapping[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        ref = getattr(record, 'k8s_ref', None)
        if ref:
            log_record[self.refkey] = ref
        log_record.setdefault('severity', get_severity(record.levelno))


class ObjectLogger(typedefs.LoggerAdapter):
    """
    A logger adapter that marks all its messages as related to one object.
    """

    def __init__(self, meta: references.ResourceMeta, *, logger: typedefs.Logger) -> None:
        super().__init__(logger, {'k8s_ref': make_ref(meta)})

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> Tuple[str, MutableMapping[str, Any]]:
        # The stdlib adapter replaces the call's extras; here, they are merged.
        kwargs['extra'] = {**(self.extra or {}), **kwargs.get('extra', {})}
        return msg, kwargs


def configure(
        debug: Optional[bool] = None,
        verbose: Optional[bool] = None,
        quiet: Optional[bool] = None,
        log_format: LogFormat = LogFormat.FULL,
        log_prefix: Optional[bool] = False,
        log_refkey: Optional[str] = None,
) -> None:
    """
    Log to stderr with the selected format and verbosity.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(make_formatter(log_format=log_format, log_prefix=log_prefix,
                                        log_refkey=log_refkey))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug or verbose else logging.WARNING if quiet else logging.INFO)

    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.propagate = bool(debug)
        if not debug:
            noisy.handlers[:] = [logging.NullHandler()]

    # Only if configured from inside of the operator, not before it is started.
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        loop.set_debug(bool(debug))


def make_formatter(
        log_format: Union[LogFormat, str] = LogFormat.FULL,
        log_prefix: Optional[bool] = False,
        log_refkey: Optional[str] = None,
) -> ObjectFormatter:
    """
    Make a formatter for the format; by default, only the text logs are prefixed.
    """
    prefixed = log_prefix if log_prefix is not None else log_format is not LogFormat.JSON
    if log_format is LogFormat.JSON:
        return ObjectJsonFormatter(refkey=log_refkey, prefixed=prefixed)
    elif isinstance(log_format, LogFormat):
        return ObjectTextFormatter(log_format.value, prefixed=prefixed)
    elif isinstance(log_format, str):
        return ObjectTextFormatter(log_format, prefixed=prefixed)
    else:
        raise ValueError(f"Unsupported log format: {log_format!r}")
