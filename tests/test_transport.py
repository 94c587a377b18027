"""Loopback tests running the whole pipeline over real asyncio sockets"""

import asyncio
import typing

import pytest

from async_dns_client.connector import Connector
from async_dns_client.errors import AllServersFailedError
from async_dns_client.executor import Executor, MultiExecutor
from async_dns_client.protocol import Packet, Record, decode_packet
from async_dns_client.resolver import Resolver, ResolverMode
from async_dns_client.transport import Transport

from conftest import a, aaaa, cname

LOOPBACK = "127.0.0.1"


class StubNameServer(asyncio.DatagramProtocol):
    """Answers every query with the configured records of the asked type"""

    def __init__(self, records: typing.Iterable[Record] = (), silent: bool = False) -> None:
        self.records = list(records)
        self.silent = silent
        self.queries: list[Packet] = []

    def connection_made(self, transport: asyncio.DatagramTransport) -> None:
        self.transport = transport

    def datagram_received(self, data: bytes, addr: typing.Any) -> None:
        query = decode_packet(data)
        self.queries.append(query)
        if self.silent:
            return
        qtype = query.question.qtype
        matching = [r for r in self.records if r.qtype in (qtype, 5)]
        self.transport.sendto(Packet.build_response(query, matching).to_bytes(), addr)


async def start_name_server(server: StubNameServer) -> tuple[asyncio.DatagramTransport, int]:
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: server, local_addr=(LOOPBACK, 0)
    )
    return transport, transport.get_extra_info("sockname")[1]


async def echo(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    writer.write(await reader.read(100))
    await writer.drain()
    writer.close()


def test_datagram_round_trip() -> None:
    async def scenario() -> bytes:
        server = StubNameServer([a("example.com", "192.0.2.1")])
        server_transport, port = await start_name_server(server)
        sock = await Transport().open_datagram(LOOPBACK, port)
        try:
            query = Packet.build_query("example.com", 1)
            sock.send(query.to_bytes())
            return await sock.receive(512, 1)
        finally:
            sock.close()
            server_transport.close()

    response = decode_packet(asyncio.run(scenario()))
    assert [r.value for r in response.records] == ["192.0.2.1"]


def test_datagram_receive_timeout() -> None:
    async def scenario() -> None:
        server_transport, port = await start_name_server(StubNameServer(silent=True))
        sock = await Transport().open_datagram(LOOPBACK, port)
        try:
            sock.send(Packet.build_query("example.com", 1).to_bytes())
            await sock.receive(512, 0.05)
        finally:
            sock.close()
            assert sock.closed
            server_transport.close()

    with pytest.raises(TimeoutError):
        asyncio.run(scenario())


def test_resolve_fails_over_from_silent_server() -> None:
    silent = StubNameServer(silent=True)
    good = StubNameServer(
        [
            cname("www.example.com", "example.com"),
            a("example.com", "192.0.2.1"),
            aaaa("example.com", "2001:db8::1"),
        ]
    )

    async def scenario() -> list[str]:
        silent_transport, silent_port = await start_name_server(silent)
        good_transport, good_port = await start_name_server(good)
        executor = MultiExecutor(
            [
                Executor(LOOPBACK, silent_port, timeout=0.05, retries=1),
                Executor(LOOPBACK, good_port, timeout=1),
            ]
        )
        try:
            return await Resolver(executor).resolve(
                "www.example.com", mode=ResolverMode.IPv6
            )
        finally:
            silent_transport.close()
            good_transport.close()

    assert asyncio.run(scenario()) == ["2001:db8::1"]
    assert len(silent.queries) == 2
    assert len(good.queries) == 1


def test_all_silent_servers() -> None:
    async def scenario() -> None:
        first_transport, first_port = await start_name_server(StubNameServer(silent=True))
        second_transport, second_port = await start_name_server(StubNameServer(silent=True))
        executor = MultiExecutor.from_servers(
            (LOOPBACK, first_port), f"{LOOPBACK}#{second_port}", timeout=0.05, retries=0
        )
        try:
            await executor.execute("example.com", "A")
        finally:
            first_transport.close()
            second_transport.close()

    with pytest.raises(AllServersFailedError) as exc_info:
        asyncio.run(scenario())
    assert len(exc_info.value.errors) == 2


def test_connect_through_resolver() -> None:
    async def scenario() -> tuple[str, bytes]:
        server = await asyncio.start_server(echo, LOOPBACK, 0)
        port = server.sockets[0].getsockname()[1]
        name_server = StubNameServer([a("echo.test", LOOPBACK)])
        ns_transport, ns_port = await start_name_server(name_server)
        connector = Connector(Resolver(Executor(LOOPBACK, ns_port, timeout=1)))
        try:
            async with await connector.connect("echo.test", port, timeout=1) as conn:
                await conn.write(b"ping")
                return conn.server_hostname, await conn.read(100)
        finally:
            ns_transport.close()
            server.close()
            await server.wait_closed()

    assert asyncio.run(scenario()) == ("echo.test", b"ping")


def test_connect_to_literal_address() -> None:
    async def scenario() -> bytes:
        server = await asyncio.start_server(echo, LOOPBACK, 0)
        port = server.sockets[0].getsockname()[1]
        try:
            conn = await Connector(Resolver(MultiExecutor())).connect(LOOPBACK, port)
            try:
                await conn.write(b"hello")
                return await conn.read(100)
            finally:
                await conn.close()
                assert conn.closed
        finally:
            server.close()
            await server.wait_closed()

    assert asyncio.run(scenario()) == b"hello"
