from __future__ import annotations

import typing
from enum import IntEnum

from .errors import InvalidArgumentError
from .executor import BaseExecutor, MultiExecutor
from .log import logger

DEFAULT_NAME_SERVERS = ("8.8.8.8", "8.8.4.4")

LOCALHOST = "localhost"


class ResolverMode(IntEnum):
    IPv4 = 1  # A
    IPv6 = 28  # AAAA


LOCALHOST_ADDRESSES = {
    ResolverMode.IPv4: "127.0.0.1",
    ResolverMode.IPv6: "::1",
}


def check_mode(mode: typing.Any) -> ResolverMode:
    if isinstance(mode, bool) or not isinstance(mode, int):
        raise InvalidArgumentError(f"invalid resolver mode: {mode!r}")
    try:
        return ResolverMode(mode)
    except ValueError:
        raise InvalidArgumentError(f"invalid resolver mode: {mode!r}") from None


class Resolver:
    """Resolves names to the addresses of one family"""

    def __init__(self, executor: BaseExecutor | None = None) -> None:
        if executor is None:
            executor = MultiExecutor.from_servers(*DEFAULT_NAME_SERVERS)
        self.executor = executor

    def __repr__(self) -> str:
        return f"{type(self).__name__}(executor={self.executor!r})"

    async def resolve(
        self,
        domain: str,
        *,
        mode: ResolverMode | int = ResolverMode.IPv4,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> list[str]:
        """Returns addresses in response order; an empty list when the name
        has no records of the requested family"""
        mode = check_mode(mode)

        if domain.lower() == LOCALHOST:
            return [LOCALHOST_ADDRESSES[mode]]

        response = await self.executor.execute(
            domain, mode, timeout=timeout, retries=retries
        )

        # CNAME and other records the server inlined are skipped
        addresses = [r.value for r in response.records if r.qtype == mode]
        logger.debug("%s %s -> %s", domain, mode.name, addresses)
        return addresses
