"""Module level shortcuts sharing one default resolver and connector"""

from __future__ import annotations

import typing

from .connector import Connector
from .protocol import Packet
from .resolver import Resolver
from .transport import Connection

_default_resolver: Resolver | None = None
_default_connector: Connector | None = None


def get_default_resolver() -> Resolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = Resolver()
    return _default_resolver


def set_default_resolver(resolver: Resolver | None) -> None:
    """Replace the shared resolver; None restores the lazy default"""
    global _default_resolver, _default_connector
    _default_resolver = resolver
    # the connector is bound to the resolver it was built with
    _default_connector = None


def get_default_connector() -> Connector:
    global _default_connector
    if _default_connector is None:
        _default_connector = Connector(get_default_resolver())
    return _default_connector


def set_default_connector(connector: Connector | None) -> None:
    global _default_connector
    _default_connector = connector


async def execute(name: str, qtype: str | int, **kwargs: typing.Any) -> Packet:
    return await get_default_resolver().executor.execute(name, qtype, **kwargs)


async def resolve(domain: str, **kwargs: typing.Any) -> list[str]:
    return await get_default_resolver().resolve(domain, **kwargs)


async def connect(name: str, port: int, **kwargs: typing.Any) -> Connection:
    return await get_default_connector().connect(name, port, **kwargs)
