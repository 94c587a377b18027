import asyncio
from typing import Mapping
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

from ..connector import ip_address_family
from ..errors import Error
from ..log import logger
from ..resolver import Resolver, ResolverMode


# https://stackoverflow.com/a/57477670
class ResolverAdapter(HTTPAdapter):
    """Sends requests to addresses found by our resolver while TLS still
    verifies the original hostname"""

    def __init__(
        self,
        resolver: Resolver | None = None,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> None:
        self.resolver = resolver or Resolver()
        self.resolve_timeout = timeout
        self.resolve_retries = retries
        super().__init__()

    async def _resolve(self, hostname: str) -> str | None:
        for mode in ResolverMode:
            addresses = await self.resolver.resolve(
                hostname,
                mode=mode,
                timeout=self.resolve_timeout,
                retries=self.resolve_retries,
            )
            if addresses:
                return addresses[0]
        return None

    def resolve(self, hostname: str) -> str:
        if ip_address_family(hostname) is not None:
            return hostname
        try:
            # must not be called from a thread already running an event loop
            address = asyncio.run(self._resolve(hostname))
        except Error as ex:
            raise requests.exceptions.ConnectionError(
                f"could not resolve {hostname}: {ex}"
            ) from ex
        if address is None:
            raise requests.exceptions.ConnectionError(
                f"could not find an address for {hostname}"
            )
        return address

    def build_connection_pool_key_attributes(
        self,
        request: requests.PreparedRequest,
        verify: bool | str,
        cert: bytes | str | tuple[bytes | str, bytes | str] | None = None,
    ) -> tuple[dict, dict]:
        host_params, pool_kwargs = super().build_connection_pool_key_attributes(
            request, verify, cert
        )
        # part of the pool key, so each hostname gets its own pool
        hostname = getattr(request, "tls_hostname", None)
        if hostname is not None and host_params["scheme"] == "https":
            pool_kwargs["server_hostname"] = hostname
            pool_kwargs["assert_hostname"] = hostname
        return host_params, pool_kwargs

    def send(
        self,
        request: requests.PreparedRequest,
        stream: bool = False,
        timeout: float | tuple[float, float] | tuple[float, None] | None = None,
        verify: bool | str = True,
        cert: bytes | str | tuple[bytes | str, bytes | str] | None = None,
        proxies: Mapping[str, str] | None = None,
    ) -> requests.Response:
        u = urlparse(request.url)
        resolved_ip = self.resolve(u.hostname)
        logger.debug("resolved ip: %s", resolved_ip)
        request.tls_hostname = None
        if resolved_ip != u.hostname:
            request.tls_hostname = u.hostname
            host = f"[{resolved_ip}]" if ":" in resolved_ip else resolved_ip
            request.url = request.url.replace(
                u.scheme + "://" + u.hostname, u.scheme + "://" + host, 1
            )
            request.headers["Host"] = u.netloc.rpartition("@")[2]
        logger.debug("request url: %s", request.url)
        return super().send(request, stream, timeout, verify, cert, proxies)


class ResolverSession(requests.Session):
    def __init__(self, resolver: Resolver | None = None, **adapter_kwargs) -> None:
        super().__init__()
        # mount only after Session.__init__ has created self.adapters
        a = ResolverAdapter(resolver, **adapter_kwargs)
        self.mount("http://", a)
        self.mount("https://", a)
