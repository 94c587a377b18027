import argparse
import asyncio
import logging
import sys
from functools import partial

from .connector import Connector
from .errors import Error, InvalidTypeError
from .executor import DEFAULT_RETRIES, DEFAULT_TIMEOUT, MultiExecutor
from .log import disable_logger, logger, set_debug
from .protocol import Packet, lookup_record_type, type_name
from .resolver import DEFAULT_NAME_SERVERS, Resolver, ResolverMode
from .utils import split_chunks

print_err = partial(print, file=sys.stderr)


def print_response(response: Packet) -> None:
    header = response.header

    print_err("Response Flags =", hex(header.flags))
    print_err()

    bits_str = f"{header.flags:016b}"

    attrs_len = {
        "response": 1,
        "opcode": 4,
        "authoritative": 1,
        "truncated": 1,
        "recursion_desired": 1,
        "recursion_available": 1,
        "reserved": 1,
        "authentic_data": 1,
        "check_disabled": 1,
        "rcode": 4,
    }

    offset = 0
    for attr, length in attrs_len.items():
        data = (
            bits_str[offset : offset + length]
            .rjust(offset + length, ".")
            .ljust(len(bits_str), ".")
        )
        data = " ".join(split_chunks(data, 4))
        label = attr.title().replace("_", " ")
        print_err(data, "=", label, f"({getattr(header, attr)!r})")
        offset += length

    print_err()
    print_err("Number of Records\t:", header.num_records)
    print_err("Number of Questions\t:", header.num_questions)
    print_err()


class NameSpace(argparse.Namespace):
    connect: int | None
    debug: bool
    ipv6: bool
    name: str
    print_response: bool
    retries: int
    servers: list[str] | None
    timeout: float
    tls: bool
    type: str | None


def parse_args(argv: list[str] | None = None) -> NameSpace:
    parser = argparse.ArgumentParser(description="Asynchronous stub DNS client")
    parser.add_argument(
        "-s",
        "--server",
        dest="servers",
        action="append",
        help="name server as host or host#port; repeat for failover"
        f" (default: {' '.join(DEFAULT_NAME_SERVERS)})",
    )
    parser.add_argument(
        "-t",
        "--type",
        help="query this record type (case insensitive) and print every answer"
        " instead of resolving addresses",
    )
    parser.add_argument(
        "-6", "--ipv6", default=False, action="store_true", help="resolve AAAA"
    )
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)
    parser.add_argument("--retries", type=int, default=DEFAULT_RETRIES)
    parser.add_argument(
        "-c",
        "--connect",
        type=int,
        metavar="PORT",
        help="open a connection to the first reachable address",
    )
    parser.add_argument(
        "--tls", default=False, action="store_true", help="connect using tls"
    )
    parser.add_argument(
        "-d",
        "--debug",
        default=False,
        help="show debug info",
        action="store_true",
    )
    parser.add_argument(
        "-pr",
        "--print-response",
        "--print",
        default=False,
        help="print response info (with --type)",
        action="store_true",
    )
    parser.add_argument("name")

    args = parser.parse_args(argv, namespace=NameSpace())

    if args.type is not None:
        try:
            lookup_record_type(args.type)
        except InvalidTypeError:
            parser.error("invalid dns record type")

    return args


async def run(args: NameSpace) -> None:
    executor = MultiExecutor.from_servers(
        *(args.servers or DEFAULT_NAME_SERVERS),
        timeout=args.timeout,
        retries=args.retries,
    )
    resolver = Resolver(executor)
    mode = ResolverMode.IPv6 if args.ipv6 else ResolverMode.IPv4

    if args.connect is not None:
        connection = await Connector(resolver).connect(
            args.name,
            args.connect,
            mode=mode,
            ssl=args.tls or None,
        )
        async with connection:
            print(f"connected to {connection.host}#{connection.port}")
        return

    if args.type is None:
        for address in await resolver.resolve(args.name, mode=mode):
            print(address)
        return

    response = await executor.execute(args.name, args.type)

    if args.print_response:
        with disable_logger():
            print_response(response)

    for record in response.records:
        print(type_name(record.qtype), record.value, sep="\t")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    logging.basicConfig()
    set_debug(args.debug)

    try:
        asyncio.run(run(args))
    except Error as ex:
        logger.error("%s", ex, exc_info=args.debug)
        sys.exit(1)


if __name__ == "__main__":
    main()
