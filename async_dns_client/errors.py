from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from .protocol import Packet


class Error(Exception):
    message: str = "An unexpected error has occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class InvalidArgumentError(Error, ValueError):
    message = "Invalid argument"


class InvalidTypeError(InvalidArgumentError):
    def __init__(self, qtype: typing.Any) -> None:
        self.qtype = qtype
        super().__init__(f"invalid record type: {qtype!r}")


class DecodeError(Error):
    """Raised by the codec for bytes that are not a DNS message"""

    message = "Could not decode dns message"


class QueryError(Error):
    """Base for failures of a single name server; MultiExecutor fails over on these"""


class FailureError(QueryError):
    message = "Transport or codec failure"


class NoResponseError(QueryError):
    message = "No response from server"


class ResponseError(QueryError):
    def __init__(self, message: str, response: Packet) -> None:
        self.response = response
        super().__init__(message)


class ResponseIdError(ResponseError):
    def __init__(self, response: Packet, expected_id: int) -> None:
        self.expected_id = expected_id
        super().__init__(
            f"response id 0x{response.header.id:04X} did not match"
            f" request id 0x{expected_id:04X}",
            response,
        )


class ResponseCodeError(ResponseError):
    def __init__(self, response: Packet) -> None:
        super().__init__(
            f"dns server returns bad response code: 0x{self.error_code_of(response):02X}",
            response,
        )

    @staticmethod
    def error_code_of(response: Packet) -> int:
        return int(response.header.rcode)

    @property
    def error_code(self) -> int:
        return self.error_code_of(self.response)

    @classmethod
    def raise_for_response(cls, response: Packet) -> None:
        if response.response_code:
            raise cls(response)


class AggregateError(Error):
    def __init__(self, message: str, errors: typing.Sequence[typing.Any]) -> None:
        self.errors = list(errors)
        super().__init__(message)


class AllServersFailedError(AggregateError, QueryError):
    def __init__(self, errors: typing.Sequence[QueryError]) -> None:
        super().__init__(
            "all name servers failed: "
            + "; ".join(str(e) for e in errors),
            errors,
        )


class ConnectionError(Error):
    message = "Connection error"


class NotFoundError(ConnectionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"could not find an address for {name}")


class AllAddressesFailedError(AggregateError, ConnectionError):
    def __init__(
        self, name: str, errors: typing.Sequence[tuple[str, BaseException]]
    ) -> None:
        self.name = name
        super().__init__(
            f"could not connect to {name}: "
            + "; ".join(f"{address}: {str(e) or type(e).__name__}" for address, e in errors),
            errors,
        )
