from __future__ import annotations

import socket
import ssl as _ssl

from .errors import (
    AllAddressesFailedError,
    ConnectionError,
    Error,
    InvalidArgumentError,
    NotFoundError,
)
from .log import logger
from .resolver import Resolver, ResolverMode
from .transport import Connection, Transport, default_transport

DEFAULT_CONNECT_TIMEOUT = 10.0


def strip_brackets(name: str) -> str:
    if name.startswith("[") and name.endswith("]"):
        return name[1:-1]
    return name


def ip_address_family(name: str) -> socket.AddressFamily | None:
    """Family of a literal address ("[::1]" included), None for anything else"""
    for family, candidate in (
        (socket.AF_INET, name),
        (socket.AF_INET6, strip_brackets(name)),
    ):
        try:
            socket.inet_pton(family, candidate)
            return family
        except (OSError, ValueError):
            pass
    return None


class Connector:
    """Opens a connection to the first reachable address of a name"""

    def __init__(
        self,
        resolver: Resolver | None = None,
        *,
        transport: Transport | None = None,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self.resolver = resolver or Resolver()
        self.transport = transport or default_transport
        self.timeout = timeout

    async def connect(
        self,
        name: str,
        port: int,
        *,
        timeout: float | None = None,
        retries: int | None = None,
        mode: ResolverMode | int = ResolverMode.IPv4,
        server_hostname: str | None = None,
        ssl: _ssl.SSLContext | bool | None = None,
    ) -> Connection:
        """Resolve `name` unless it is a literal address, then try each
        address in order.

        `server_hostname` is the identity checked against the peer
        certificate when `ssl` is given; it defaults to `name`, never to the
        resolved address.
        """
        if server_hostname is None:
            server_hostname = strip_brackets(name)

        if ip_address_family(name) is not None:
            addresses = [strip_brackets(name)]
        else:
            try:
                addresses = await self.resolver.resolve(
                    name, mode=mode, timeout=timeout, retries=retries
                )
            except InvalidArgumentError:
                raise
            except Error as ex:
                raise ConnectionError(f"could not resolve {name}: {ex}") from ex
            if not addresses:
                raise NotFoundError(name)

        connect_timeout = self.timeout if timeout is None else timeout
        errors: list[tuple[str, BaseException]] = []
        for address in addresses:
            logger.debug("connect to %s#%d (%s)", address, port, name)
            try:
                return await self.transport.open_stream(
                    address,
                    port,
                    timeout=connect_timeout,
                    ssl=ssl,
                    server_hostname=server_hostname,
                )
            except (OSError, TimeoutError) as ex:
                logger.warning("could not connect to %s#%d: %r", address, port, ex)
                errors.append((address, ex))

        raise AllAddressesFailedError(name, errors) from errors[-1][1]
