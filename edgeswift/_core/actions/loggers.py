"""
Per-object logging and the logging setup of the controller's process.

The reconciliation messages are logged via :class:`ObjectLogger`, which
carries the object's reference (namespace, name, etc) in the log records.
The reference is then used either as a ``[namespace/name]`` message prefix
in the text formats, or as a separate field in the JSON format.
"""
import copy
import enum
import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, TextIO

from pythonjsonlogger.core import RESERVED_ATTRS as _pjl_RESERVED_ATTRS
from pythonjsonlogger.json import JsonFormatter as _pjl_JsonFormatter

from edgeswift._cogs.helpers import typedefs
from edgeswift._cogs.structs import swifts

logger = logging.getLogger('edgeswift.objects')

# A key for object references in JSON logs, as seen by the log parsers.
DEFAULT_JSON_REFKEY = 'object'


class LogFormat(enum.Enum):
    """ Log formats, as specified on CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # not used for formatting, only for detection


class ObjectFormatter(logging.Formatter):
    pass


class ObjectTextFormatter(ObjectFormatter, logging.Formatter):
    pass


class ObjectJsonFormatter(ObjectFormatter, _pjl_JsonFormatter):
    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        # Avoid type checking, as the args are not in the parent consructor.
        reserved_attrs = kwargs.pop('reserved_attrs', _pjl_RESERVED_ATTRS)
        reserved_attrs = set(reserved_attrs)
        reserved_attrs |= {'k8s_ref'}
        kwargs |= dict(reserved_attrs=reserved_attrs)
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, object],
            record: logging.LogRecord,
            message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self._refkey and hasattr(record, 'k8s_ref'):
            ref = getattr(record, 'k8s_ref')
            log_record[self._refkey] = ref

        if 'severity' not in log_record:
            log_record['severity'] = (
                "debug" if record.levelno <= logging.DEBUG else
                "info" if record.levelno <= logging.INFO else
                "warn" if record.levelno <= logging.WARNING else
                "error" if record.levelno <= logging.ERROR else
                "fatal")


class ObjectPrefixingMixin(ObjectFormatter):
    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, 'k8s_ref'):
            ref = getattr(record, 'k8s_ref')
            namespace = ref.get('namespace', '')
            name = ref.get('name', '')
            prefix = f"[{namespace}/{name}]" if namespace else f"[{name}]"
            record = copy.copy(record)  # shallow
            record.msg = f"{prefix} {record.msg}"
        return super().format(record)


class ObjectPrefixingTextFormatter(ObjectPrefixingMixin, ObjectTextFormatter):
    pass


class ObjectPrefixingJsonFormatter(ObjectPrefixingMixin, ObjectJsonFormatter):
    pass


class ObjectLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the object identifiers for formatting.

    Constructed in the event handling of each individual object,
    on top of the controller's logger (either the injected or the default one).

    The internal structure is made the same as an object reference in K8s API.
    It is built from the frozen snapshot, so it is safe to keep it around.
    """

    def __init__(
            self,
            *,
            instance: swifts.SwiftInstance,
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__(logger, dict(k8s_ref=instance.as_ref()))

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # Native logging overwrites the message's extra with the adapter's extra.
        # We merge them, so that both message's & adapter's extras are available.
        kwargs["extra"] = dict(self.extra or {}) | kwargs.get('extra', {})
        return msg, kwargs


# Used to identify and remove our own handlers on re-runs in the CLI tests. Every test injects
# its own handler, but the previous handlers of preceding tests can have the stream closed,
# since they stream into an stderr interceptor of Click's runner, not to the real stderr.
if TYPE_CHECKING:
    class _EdgeSwiftStreamHandler(logging.StreamHandler[TextIO]):
        pass
else:
    class _EdgeSwiftStreamHandler(logging.StreamHandler):
        pass


def configure(
        debug: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> None:
    log_level = 'DEBUG' if debug or verbose else 'WARNING' if quiet else 'INFO'
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix, log_refkey=log_refkey)
    handler = _EdgeSwiftStreamHandler()
    handler.setFormatter(formatter)
    logger = logging.getLogger()
    logger.handlers[:] = [h for h in logger.handlers if not isinstance(h, _EdgeSwiftStreamHandler)]
    logger.addHandler(handler)
    logger.setLevel(log_level)

    # Prevent the low-level logging unless in the debug mode. Keep only the controller's messages.
    # For no-propagation loggers, add a dummy null handler to prevent printing the messages.
    for name in ['asyncio']:
        logger = logging.getLogger(name)
        logger.propagate = bool(debug)
        if not debug:
            logger.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> ObjectFormatter:
    log_prefix = log_prefix if log_prefix is not None else bool(log_format is not LogFormat.JSON)
    match log_format:
        case LogFormat.JSON:
            if log_prefix:
                return ObjectPrefixingJsonFormatter(refkey=log_refkey)
            else:
                return ObjectJsonFormatter(refkey=log_refkey)
        case LogFormat():
            if log_prefix:
                return ObjectPrefixingTextFormatter(log_format.value)
            else:
                return ObjectTextFormatter(log_format.value)
        case str():
            if log_prefix:
                return ObjectPrefixingTextFormatter(log_format)
            else:
                return ObjectTextFormatter(log_format)
        case _:
            raise ValueError(f"Unsupported log format: {log_format!r}")
