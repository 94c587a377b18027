from __future__ import annotations

import dataclasses
import typing

from .errors import (
    AllServersFailedError,
    DecodeError,
    FailureError,
    InvalidArgumentError,
    NoResponseError,
    QueryError,
    ResponseCodeError,
    ResponseIdError,
)
from .log import logger
from .protocol import (
    Packet,
    decode_packet,
    encode_name,
    lookup_record_type,
    type_name,
)
from .transport import Transport, default_transport
from .utils import timeit

DNS_PORT = 53
# non-EDNS ceiling, rfc1035 section 2.3.4
MAX_PACKET_SIZE = 512

DEFAULT_TIMEOUT = 2.0
DEFAULT_RETRIES = 2


class BaseExecutor:
    """Something that runs a DNS query and returns the validated response"""

    async def execute(
        self,
        name: str,
        qtype: str | int,
        *,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> Packet:
        raise NotImplementedError


@dataclasses.dataclass
class Executor(BaseExecutor):
    """Queries a single name server over UDP"""

    host: str
    port: int = DNS_PORT
    _: dataclasses.KW_ONLY
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    transport: Transport = dataclasses.field(
        default=default_transport, repr=False, compare=False
    )

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port

    @timeit
    async def execute(
        self,
        name: str,
        qtype: str | int,
        *,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> Packet:
        qtype = lookup_record_type(qtype)
        timeout = self.timeout if timeout is None else float(timeout)
        retries = max(0, self.retries if retries is None else int(retries))
        encode_name(name)

        try:
            sock = await self.transport.open_datagram(self.host, self.port)
        except OSError as ex:
            raise FailureError(
                f"could not open udp association to {self.host}#{self.port}: {ex}"
            ) from ex

        try:
            for attempt in range(retries + 1):
                # a fresh id per attempt: a late answer to an earlier attempt
                # fails the call with ResponseIdError instead of being accepted
                query = Packet.build_query(name, qtype)
                data = query.to_bytes()
                logger.debug(
                    "query %s %s to %s#%d (attempt %d/%d, id 0x%04X): %s",
                    name,
                    type_name(qtype),
                    self.host,
                    self.port,
                    attempt + 1,
                    retries + 1,
                    query.id,
                    data.hex(" ", 1),
                )
                try:
                    sock.send(data)
                    raw = await sock.receive(MAX_PACKET_SIZE, timeout)
                except TimeoutError:
                    logger.warning(
                        "timeout after %.3fs waiting for %s#%d",
                        timeout,
                        self.host,
                        self.port,
                    )
                    continue
                except OSError as ex:
                    raise FailureError(
                        f"transport error talking to {self.host}#{self.port}: {ex}"
                    ) from ex

                logger.debug("bytes received: %d", len(raw))

                try:
                    response = decode_packet(raw)
                except DecodeError as ex:
                    raise FailureError(str(ex)) from ex

                if response.id != query.id:
                    raise ResponseIdError(response, query.id)

                if not response.is_response:
                    raise FailureError(
                        f"{self.host}#{self.port} sent a query instead of a response"
                    )

                ResponseCodeError.raise_for_response(response)

                logger.debug(response)
                return response

            raise NoResponseError(
                f"no response from {self.host}#{self.port}"
                f" after {retries + 1} attempt(s)"
            )
        finally:
            sock.close()


class MultiExecutor(BaseExecutor):
    """Tries several executors in insertion order until one succeeds"""

    def __init__(self, executors: typing.Iterable[BaseExecutor] = ()) -> None:
        self._executors: list[BaseExecutor] = list(executors)

    @classmethod
    def from_servers(
        cls,
        *servers: str | tuple[str, int],
        **executor_kwargs: typing.Any,
    ) -> MultiExecutor:
        """Build from "host", "host#port" or (host, port) entries"""
        rv = cls()
        for server in servers:
            if isinstance(server, tuple):
                host, port = server
            else:
                host, _, port = server.partition("#")
                port = int(port) if port else DNS_PORT
            rv.add(Executor(host, port, **executor_kwargs))
        return rv

    def add(self, executor: BaseExecutor) -> None:
        self._executors.append(executor)

    @property
    def executors(self) -> tuple[BaseExecutor, ...]:
        return tuple(self._executors)

    async def execute(
        self,
        name: str,
        qtype: str | int,
        *,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> Packet:
        qtype = lookup_record_type(qtype)

        if not self._executors:
            raise InvalidArgumentError("no name servers configured")

        errors: list[QueryError] = []
        for executor in self.executors:
            try:
                return await executor.execute(
                    name, qtype, timeout=timeout, retries=retries
                )
            except QueryError as ex:
                logger.warning("%r failed, trying next server: %s", executor, ex)
                errors.append(ex)

        raise AllServersFailedError(errors) from errors[-1]
