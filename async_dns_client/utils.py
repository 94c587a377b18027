import functools
import time
import typing
from dataclasses import dataclass, field

from .log import logger


@dataclass
class BitsReader:
    """
    Read bit fields from an integer, most significant bit first.

    Header flags are 16 bits wide:

    >>> f"{0x8180:016b}"
    '1000000110000000'

    A field of ``n`` bits starting at ``offset`` is shifted right by
    ``length - n - offset`` and masked with ``(1 << n) - 1``:

    >>> reader = BitsReader(0x8180, 16)
    >>> reader.read()
    1
    >>> reader.read(4)
    0
    >>> reader.seek(12)
    >>> reader.read(4)
    0
    """

    value: int
    length: int
    offset: int = field(init=False, repr=False, default=0)

    def read(self, n: int = 1) -> int:
        """Read n bits from value"""
        assert n >= 1
        mask = (1 << n) - 1
        shift = self.length - n - self.offset
        try:
            return (self.value >> shift) & mask
        finally:
            self.offset += n

    def read_bool(self) -> bool:
        return self.read() > 0

    def seek(self, offset: int = 0) -> None:
        self.offset = offset


@dataclass
class BitsWriter:
    """Pack bit fields into an integer, most significant bit first"""

    length: int
    offset: int = field(init=False, repr=False, default=0)
    result: int = field(init=False, repr=False, default=0)

    def write(self, data: int | bool, n: int = 1) -> None:
        assert n >= 1
        mask = (1 << n) - 1
        shift = self.length - n - self.offset
        self.result |= (data & mask) << shift
        self.offset += n


def split_chunks(seq: typing.Sequence, n: int) -> list:
    return [seq[i : i + n] for i in range(0, len(seq), n)]


def timeit(fn: typing.Callable) -> typing.Callable:
    """Log how long a coroutine function took, whatever the outcome"""

    @functools.wraps(fn)
    async def timed(*args: typing.Any, **kwargs: typing.Any) -> typing.Any:
        dt = -time.monotonic()
        try:
            return await fn(*args, **kwargs)
        finally:
            dt += time.monotonic()
            logger.debug("function %s took %.3fs", fn.__qualname__, dt)

    return timed
