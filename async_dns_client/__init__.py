"""Asynchronous stub DNS client: resolve names and connect to them."""

__version__ = "0.3.0"

from .connector import Connector
from .errors import (
    AllAddressesFailedError,
    AllServersFailedError,
    ConnectionError,
    DecodeError,
    Error,
    FailureError,
    InvalidArgumentError,
    InvalidTypeError,
    NoResponseError,
    NotFoundError,
    QueryError,
    ResponseCodeError,
    ResponseError,
    ResponseIdError,
)
from .executor import BaseExecutor, Executor, MultiExecutor
from .functions import (
    connect,
    execute,
    resolve,
    set_default_connector,
    set_default_resolver,
)
from .protocol import RECORD_TYPES, Packet, Record, RecordType
from .resolver import Resolver, ResolverMode
from .transport import Connection, Transport

__all__: tuple[str, ...] = (
    "AllAddressesFailedError",
    "AllServersFailedError",
    "BaseExecutor",
    "Connection",
    "ConnectionError",
    "Connector",
    "DecodeError",
    "Error",
    "Executor",
    "FailureError",
    "InvalidArgumentError",
    "InvalidTypeError",
    "MultiExecutor",
    "NoResponseError",
    "NotFoundError",
    "Packet",
    "QueryError",
    "RECORD_TYPES",
    "Record",
    "RecordType",
    "Resolver",
    "ResolverMode",
    "ResponseCodeError",
    "ResponseError",
    "ResponseIdError",
    "Transport",
    "connect",
    "execute",
    "resolve",
    "set_default_connector",
    "set_default_resolver",
)
