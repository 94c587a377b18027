"""asyncio datagram and stream transports used by executors and connectors"""

from __future__ import annotations

import asyncio
import ssl as _ssl
import types
import typing

from .log import logger


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.queue: asyncio.Queue[bytes | Exception] = asyncio.Queue()

    def datagram_received(self, data: bytes, addr: typing.Any) -> None:
        self.queue.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        # e.g. ICMP port unreachable surfaces as ConnectionRefusedError
        self.queue.put_nowait(exc)


class DatagramSocket:
    """Connected UDP association to a single peer"""

    def __init__(
        self,
        transport: asyncio.DatagramTransport,
        protocol: _DatagramProtocol,
    ) -> None:
        self._transport = transport
        self._protocol = protocol

    @property
    def closed(self) -> bool:
        return self._transport.is_closing()

    def send(self, data: bytes) -> None:
        self._transport.sendto(data)

    async def receive(self, max_size: int, timeout: float | None) -> bytes:
        """Wait for one datagram; raises TimeoutError when `timeout` elapses"""
        item = await asyncio.wait_for(self._protocol.queue.get(), timeout)
        if isinstance(item, Exception):
            raise item
        return item[:max_size]

    def close(self) -> None:
        self._transport.close()


class Connection:
    """Established stream connection, owned by whoever received it"""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        host: str,
        port: int,
        server_hostname: str | None = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.host = host
        self.port = port
        self.server_hostname = server_hostname

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(host={self.host!r}, port={self.port!r},"
            f" server_hostname={self.server_hostname!r})"
        )

    @property
    def closed(self) -> bool:
        return self.writer.is_closing()

    async def read(self, n: int = -1) -> bytes:
        return await self.reader.read(n)

    async def write(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        if self.closed:
            return
        self.writer.close()
        await self.writer.wait_closed()
        logger.info("disconnected: %s#%d", self.host, self.port)

    async def __aenter__(self) -> typing.Self:
        return self

    async def __aexit__(
        self,
        exc_type: typing.Type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.close()


class Transport:
    """Opens datagram associations and stream connections with asyncio"""

    async def open_datagram(self, host: str, port: int) -> DatagramSocket:
        loop = asyncio.get_running_loop()
        transport, protocol = await loop.create_datagram_endpoint(
            _DatagramProtocol,
            remote_addr=(host, port),
        )
        logger.debug("udp association opened: %s#%d", host, port)
        return DatagramSocket(transport, protocol)

    async def open_stream(
        self,
        host: str,
        port: int,
        *,
        timeout: float | None = None,
        ssl: _ssl.SSLContext | bool | None = None,
        server_hostname: str | None = None,
    ) -> Connection:
        kwargs: dict[str, typing.Any] = {}
        if ssl:
            kwargs |= {"ssl": ssl, "server_hostname": server_hostname}
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, **kwargs), timeout
        )
        logger.info("connection established: %s#%d", host, port)
        return Connection(reader, writer, host, port, server_hostname)


default_transport = Transport()
