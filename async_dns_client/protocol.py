# https://datatracker.ietf.org/doc/html/rfc1035#section-4
# https://www.iana.org/assignments/dns-parameters/dns-parameters.xhtml
# https://implement-dns.wizardzines.com/book/part_1
# https://implement-dns.wizardzines.com/book/part_2
from __future__ import annotations

import dataclasses
import io
import operator
import secrets
import socket
import struct
import types
import typing
from enum import IntEnum

from .errors import DecodeError, InvalidArgumentError, InvalidTypeError
from .utils import BitsReader, BitsWriter

MAX_TYPE = 0xFFFF
MAX_LABEL_LENGTH = 63
MAX_POINTER_JUMPS = 64


class RecordType(IntEnum):
    A = 1
    NS = 2
    CNAME = 5
    SOA = 6
    PTR = 12
    MX = 15
    TXT = 16
    AAAA = 28
    SRV = 33
    NAPTR = 35
    OPT = 41
    DS = 43
    RRSIG = 46
    NSEC = 47
    DNSKEY = 48
    NSEC3 = 50
    IXFR = 251
    AXFR = 252
    ANY = 255
    CAA = 257


# symbolic name -> numeric type, aliases included
RECORD_TYPES: typing.Mapping[str, int] = types.MappingProxyType(
    {
        "A": 1,
        "AAAA": 28,
        "AFSDB": 18,
        "ALL": 255,
        "ANY": 255,
        "APL": 42,
        "AXFR": 252,
        "CAA": 257,
        "CDNSKEY": 60,
        "CDS": 59,
        "CERT": 37,
        "CNAME": 5,
        "DHCID": 49,
        "DLV": 32769,
        "DNAME": 39,
        "DNSKEY": 48,
        "DS": 43,
        "HIP": 55,
        "IPSECKEY": 45,
        "IXFR": 251,
        "KEY": 25,
        "KX": 36,
        "LOC": 29,
        "MAILA": 254,
        "MAILB": 253,
        "MX": 15,
        "NAPTR": 35,
        "NS": 2,
        "NSEC": 47,
        "NSEC3": 50,
        "NSEC3PARAM": 51,
        "OPT": 41,
        "PTR": 12,
        "RRSIG": 46,
        "SIG": 24,
        "SOA": 6,
        "SRV": 33,
        "SSHFP": 44,
        "TA": 32768,
        "TKEY": 249,
        "TLSA": 52,
        "TSIG": 250,
        "TXT": 16,
        "*": 255,
    }
)


def lookup_record_type(qtype: str | int) -> int:
    """Map a record type name ("aaaa", "MX") or code to its numeric code.

    Raises InvalidTypeError for unknown names and codes outside 0..65535.
    """
    if isinstance(qtype, str):
        try:
            return RECORD_TYPES[qtype.upper()]
        except KeyError:
            raise InvalidTypeError(qtype) from None
    # bool is an int subclass but never a record type
    if not isinstance(qtype, int) or isinstance(qtype, bool):
        raise InvalidTypeError(qtype)
    if not 0 <= qtype <= MAX_TYPE:
        raise InvalidTypeError(qtype)
    return int(qtype)


def type_name(qtype: int) -> str:
    try:
        return RecordType(qtype).name
    except ValueError:
        return f"TYPE{qtype}"


class RecordClass(IntEnum):
    IN = 1  # INternet
    CH = 3  # CHaos
    HS = 4
    NONE = 254
    ANY = 255


class OpCode(IntEnum):
    QUERY = 0
    INVERSE = 1  # obsolete, rfc3425
    STATUS = 2
    NOTIFY = 4
    UPDATE = 5


class ResponseCode(IntEnum):
    NOERROR = 0
    FORMERR = 1
    SERVFAIL = 2
    NXDOMAIN = 3
    NOTIMP = 4
    REFUSED = 5
    YXDOMAIN = 6
    YXRRSET = 7
    NXRRSET = 8
    NOTAUTH = 9
    NOTZONE = 10


T = typing.TypeVar("T")


def read_exact(fp: typing.BinaryIO, n: int) -> bytes:
    data = fp.read(n)
    if len(data) != n:
        raise DecodeError(f"unexpected end of message: wanted {n} bytes, got {len(data)}")
    return data


def read_uint(fp: typing.BinaryIO, n: int) -> int:
    return int.from_bytes(read_exact(fp, n))


class PacketHandler:
    def parse(self, fp: typing.BinaryIO) -> None:
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        raise NotImplementedError

    @classmethod
    def read_from(cls: typing.Type[T], fp: typing.BinaryIO) -> T:
        o = cls()
        o.parse(fp)
        return o


# network byte order
HEADER_FORMAT = struct.Struct("!6H")


@dataclasses.dataclass
class Header(PacketHandler):
    id: int = 0

    # packed into the 16 bit flags field
    response: bool = False  # QR
    opcode: int = OpCode.QUERY  # 4 bits
    authoritative: bool = False  # AA
    truncated: bool = False  # TC
    recursion_desired: bool = False  # RD
    recursion_available: bool = False  # RA
    reserved: bool = False  # Z, always 0
    authentic_data: bool = False  # AD
    check_disabled: bool = False  # CD
    rcode: int = ResponseCode.NOERROR  # 4 bits

    num_questions: int = 0
    num_records: int = 0
    num_authorities: int = 0
    num_additionals: int = 0

    _: dataclasses.KW_ONLY

    # without an explicit value the class level `flags` property is passed in
    flags: dataclasses.InitVar[int]

    def __post_init__(self, flags: int | property) -> None:
        if isinstance(flags, int):
            self.flags = flags

    @property
    def flags(self) -> int:
        writer = BitsWriter(16)
        writer.write(self.response)
        writer.write(self.opcode, 4)
        writer.write(self.authoritative)
        writer.write(self.truncated)
        writer.write(self.recursion_desired)
        writer.write(self.recursion_available)
        writer.write(self.reserved)
        writer.write(self.authentic_data)
        writer.write(self.check_disabled)
        writer.write(self.rcode, 4)
        return writer.result

    @flags.setter
    def flags(self, v: int) -> None:
        reader = BitsReader(v, 16)
        self.response = reader.read_bool()
        self.opcode = reader.read(4)
        self.authoritative = reader.read_bool()
        self.truncated = reader.read_bool()
        self.recursion_desired = reader.read_bool()
        self.recursion_available = reader.read_bool()
        self.reserved = reader.read_bool()
        self.authentic_data = reader.read_bool()
        self.check_disabled = reader.read_bool()
        self.rcode = reader.read(4)

    def to_bytes(self) -> bytes:
        return HEADER_FORMAT.pack(
            self.id,
            self.flags,
            self.num_questions,
            self.num_records,
            self.num_authorities,
            self.num_additionals,
        )

    def parse(self, fp: typing.BinaryIO) -> None:
        (
            self.id,
            self.flags,
            self.num_questions,
            self.num_records,
            self.num_authorities,
            self.num_additionals,
        ) = HEADER_FORMAT.unpack(read_exact(fp, HEADER_FORMAT.size))


def encode_name(s: str) -> bytes:
    """Encode a domain name as length prefixed labels terminated by a zero byte"""
    s = s.rstrip(".")
    if not s:
        return b"\0"
    try:
        raw = s.encode("ascii")
    except UnicodeEncodeError:
        try:
            raw = s.encode("idna")
        except UnicodeError as ex:
            raise InvalidArgumentError(f"invalid domain name: {s!r}") from ex
    rv = b""
    for label in raw.split(b"."):
        if not 0 < len(label) <= MAX_LABEL_LENGTH:
            raise InvalidArgumentError(f"invalid domain name: {s!r}")
        rv += len(label).to_bytes() + label
    return rv + b"\0"


def read_name(fp: typing.BinaryIO) -> str:
    labels = []
    # after the first compression pointer the stream position is restored there
    resume_at = None
    jumps = 0
    while length := read_uint(fp, 1):
        if length & 0xC0 == 0xC0:
            pointer = ((length & 0x3F) << 8) | read_uint(fp, 1)
            jumps += 1
            if jumps > MAX_POINTER_JUMPS:
                raise DecodeError("too many compression pointers")
            if resume_at is None:
                resume_at = fp.tell()
            fp.seek(pointer)
            continue
        if length & 0xC0:
            raise DecodeError(f"unsupported label type: 0x{length:02X}")
        labels.append(read_exact(fp, length).decode())
    if resume_at is not None:
        fp.seek(resume_at)
    return ".".join(labels)


def read_character_strings(data: bytes) -> list[str]:
    rv = []
    pos = 0
    while pos < len(data):
        n = data[pos]
        chunk = data[pos + 1 : pos + 1 + n]
        if len(chunk) != n:
            raise DecodeError("truncated character string")
        rv.append(chunk.decode())
        pos += 1 + n
    return rv


@dataclasses.dataclass
class Question(PacketHandler):
    name: str | None = None
    qtype: int = RecordType.A
    qclass: int = RecordClass.IN

    def to_bytes(self) -> bytes:
        return (
            encode_name(self.name)
            + self.qtype.to_bytes(2)
            + self.qclass.to_bytes(2)
        )

    def parse(self, fp: typing.BinaryIO) -> None:
        self.name = read_name(fp)
        self.qtype = read_uint(fp, 2)
        self.qclass = read_uint(fp, 2)


@dataclasses.dataclass
class Record(PacketHandler):
    """Resource record from the answer section"""

    name: str | None = None
    qtype: int = RecordType.A
    qclass: int = RecordClass.IN
    ttl: int = 0
    value: typing.Any = None

    def _parse_value(self, fp: typing.BinaryIO, data_len: int) -> typing.Any:
        match self.qtype:
            case RecordType.A:
                return socket.inet_ntoa(read_exact(fp, data_len))
            case RecordType.AAAA:
                return socket.inet_ntop(socket.AF_INET6, read_exact(fp, data_len))
            case RecordType.MX:
                pri = read_uint(fp, 2)
                return pri, read_name(fp)
            case RecordType.CNAME | RecordType.NS | RecordType.PTR:
                return read_name(fp)
            case RecordType.TXT:
                return "".join(read_character_strings(read_exact(fp, data_len)))
            case _:
                return read_exact(fp, data_len)

    def _value_to_bytes(self) -> bytes:
        match self.qtype:
            case RecordType.A:
                return socket.inet_aton(self.value)
            case RecordType.AAAA:
                return socket.inet_pton(socket.AF_INET6, self.value)
            case RecordType.MX:
                pri, exchange = self.value
                return pri.to_bytes(2) + encode_name(exchange)
            case RecordType.CNAME | RecordType.NS | RecordType.PTR:
                return encode_name(self.value)
            case RecordType.TXT:
                data = self.value.encode()
                return b"".join(
                    len(chunk).to_bytes() + chunk
                    for chunk in (data[i : i + 255] for i in range(0, len(data), 255))
                )
            case _:
                return bytes(self.value or b"")

    def to_bytes(self) -> bytes:
        rdata = self._value_to_bytes()
        return (
            encode_name(self.name)
            + self.qtype.to_bytes(2)
            + self.qclass.to_bytes(2)
            + self.ttl.to_bytes(4)
            + len(rdata).to_bytes(2)
            + rdata
        )

    def parse(self, fp: typing.BinaryIO) -> None:
        self.name = read_name(fp)
        self.qtype = read_uint(fp, 2)
        self.qclass = read_uint(fp, 2)
        self.ttl = read_uint(fp, 4)
        data_len = read_uint(fp, 2)
        end = fp.tell() + data_len
        self.value = self._parse_value(fp, data_len)
        # names inside rdata may be compressed, so realign on the declared length
        fp.seek(end)


@dataclasses.dataclass
class Packet(PacketHandler):
    """Query or response message (header, questions and answers)"""

    header: Header | None = None
    questions: list[Question] = dataclasses.field(default_factory=list)
    records: list[Record] = dataclasses.field(default_factory=list)

    def parse(self, fp: typing.BinaryIO) -> None:
        self.header = Header.read_from(fp)
        self.questions = [
            Question.read_from(fp) for _ in range(self.header.num_questions)
        ]
        self.records = [
            Record.read_from(fp) for _ in range(self.header.num_records)
        ]

    def to_bytes(self) -> bytes:
        header = dataclasses.replace(
            self.header,
            num_questions=len(self.questions),
            num_records=len(self.records),
            flags=self.header.flags,
        )
        to_bytes = operator.methodcaller("to_bytes")
        return b"".join(
            [
                header.to_bytes(),
                *map(to_bytes, self.questions),
                *map(to_bytes, self.records),
            ]
        )

    @property
    def id(self) -> int:
        return self.header.id

    @property
    def response_code(self) -> int:
        return self.header.rcode

    @property
    def is_response(self) -> bool:
        return self.header.response

    @property
    def question(self) -> Question | None:
        try:
            return self.questions[0]
        except IndexError:
            return None

    @classmethod
    def build_query(cls: typing.Type[Packet], qname: str, qtype: int, /) -> Packet:
        """Build a recursive query with a random transaction id"""
        question = Question(qname, qtype, RecordClass.IN)
        # validate the name now rather than on first serialization
        encode_name(qname)
        # Flags: 0x0120 standard query, recursion desired, AD bit set (as dig does)
        return cls(
            header=Header(
                id=secrets.randbits(16),
                num_questions=1,
                flags=0x120,
            ),
            questions=[question],
        )

    @classmethod
    def build_response(
        cls: typing.Type[Packet],
        query: Packet,
        records: typing.Iterable[Record] = (),
        rcode: int = ResponseCode.NOERROR,
    ) -> Packet:
        """Build a response to `query`; used by stub servers and tests"""
        header = dataclasses.replace(query.header, flags=query.header.flags)
        header.response = True
        header.recursion_available = True
        header.rcode = rcode
        return cls(
            header=header,
            questions=list(query.questions),
            records=list(records),
        )


def decode_packet(data: bytes) -> Packet:
    """Decode a wire-format message, raising DecodeError on any malformation"""
    try:
        return Packet.read_from(io.BytesIO(data))
    except DecodeError:
        raise
    except (ValueError, OSError, struct.error) as ex:
        # UnicodeDecodeError is a ValueError; inet_ntoa raises OSError
        raise DecodeError(f"malformed dns message: {ex}") from ex
