import asyncio
import typing

import pytest

from async_dns_client import functions
from async_dns_client.executor import BaseExecutor
from async_dns_client.protocol import (
    Packet,
    Record,
    RecordClass,
    RecordType,
    decode_packet,
)
from async_dns_client.transport import Connection

# a reply is bytes, an exception to raise, None to hang until cancelled, or
# a callable taking the decoded queries sent so far and returning bytes
Reply = typing.Union[bytes, BaseException, None, typing.Callable[[list[Packet]], bytes]]


def record(name: str, qtype: int, value: typing.Any, ttl: int = 300) -> Record:
    return Record(name, qtype, RecordClass.IN, ttl, value)


def a(name: str, address: str) -> Record:
    return record(name, RecordType.A, address)


def aaaa(name: str, address: str) -> Record:
    return record(name, RecordType.AAAA, address)


def cname(name: str, target: str) -> Record:
    return record(name, RecordType.CNAME, target)


def answer(*records: Record, rcode: int = 0, id_delta: int = 0, to: int = -1):
    """Reply to the query at index `to` among those sent so far"""

    def reply(queries: list[Packet]) -> bytes:
        response = Packet.build_response(queries[to], records, rcode)
        response.header.id = (response.header.id + id_delta) & 0xFFFF
        return response.to_bytes()

    return reply


class FakeDatagramSocket:
    def __init__(self, replies: list[Reply]) -> None:
        self.replies = replies
        self.sent: list[bytes] = []
        self.close_calls = 0

    @property
    def queries(self) -> list[Packet]:
        return [decode_packet(data) for data in self.sent]

    def send(self, data: bytes) -> None:
        self.sent.append(data)

    async def receive(self, max_size: int, timeout: float | None) -> bytes:
        # an exhausted script behaves like a server that never answers
        reply = self.replies.pop(0) if self.replies else TimeoutError()
        if reply is None:
            await asyncio.sleep(3600)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(self.queries)
        return reply[:max_size]

    def close(self) -> None:
        self.close_calls += 1


class FakeWriter:
    def __init__(self) -> None:
        self.closing = False

    def is_closing(self) -> bool:
        return self.closing

    def close(self) -> None:
        self.closing = True

    async def wait_closed(self) -> None:
        return None


class FakeTransport:
    def __init__(
        self,
        replies: typing.Iterable[Reply] = (),
        stream_errors: typing.Mapping[str, BaseException] | None = None,
        open_error: BaseException | None = None,
    ) -> None:
        self.replies = list(replies)
        self.stream_errors = dict(stream_errors or {})
        self.open_error = open_error
        self.sockets: list[FakeDatagramSocket] = []
        self.streams: list[dict[str, typing.Any]] = []

    @property
    def socket(self) -> FakeDatagramSocket:
        return self.sockets[-1]

    async def open_datagram(self, host: str, port: int) -> FakeDatagramSocket:
        if self.open_error is not None:
            raise self.open_error
        sock = FakeDatagramSocket(self.replies)
        self.sockets.append(sock)
        return sock

    async def open_stream(self, host, port, *, timeout=None, ssl=None, server_hostname=None):
        self.streams.append(
            {
                "host": host,
                "port": port,
                "timeout": timeout,
                "ssl": ssl,
                "server_hostname": server_hostname,
            }
        )
        if host in self.stream_errors:
            raise self.stream_errors[host]
        return Connection(None, FakeWriter(), host, port, server_hostname)


class FakeExecutor(BaseExecutor):
    """Returns or raises scripted outcomes, recording each call"""

    def __init__(self, *outcomes: Packet | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict[str, typing.Any]] = []

    async def execute(self, name, qtype, *, timeout=None, retries=None):
        self.calls.append(
            {"name": name, "qtype": qtype, "timeout": timeout, "retries": retries}
        )
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def response_with(*records: Record, name: str = "example.com", qtype: int = 1) -> Packet:
    return Packet.build_response(Packet.build_query(name, qtype), records)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture(autouse=True)
def reset_defaults() -> typing.Iterator[None]:
    yield
    functions.set_default_resolver(None)
