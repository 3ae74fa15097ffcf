"""Hostname extraction from listen/advertise addresses."""

from collections.abc import Iterable

from .errors import InvalidAddressError

DEFAULT_PORT = "0"


def split_host_port(address: str) -> tuple[str, str]:
    """Split "host:port" into its parts.

    Accepts a bare host, a bracketed IPv6 literal with or without a port,
    and host:port. The port defaults to "0" when absent. ":port" (listen on
    all interfaces) returns an empty host.

    Raises:
        InvalidAddressError: If the address cannot be split, or has neither host nor port separator
    """
    if any(ch.isspace() for ch in address):
        raise InvalidAddressError(f"address {address!r} contains whitespace")

    if address.startswith("["):
        end = address.find("]")
        if end == -1:
            raise InvalidAddressError(f"address {address!r} is missing ']'")
        host = address[1:end]
        rest = address[end + 1 :]
        if rest == "":
            port = DEFAULT_PORT
        elif rest.startswith(":"):
            port = rest[1:] or DEFAULT_PORT
        else:
            raise InvalidAddressError(f"address {address!r} has unexpected text after ']'")
    else:
        if "]" in address:
            raise InvalidAddressError(f"address {address!r} has unbalanced ']'")
        if address.count(":") > 1:
            raise InvalidAddressError(
                f"address {address!r} has too many colons; bracket IPv6 hosts"
            )
        host, sep, port = address.partition(":")
        if sep and not host:
            return "", port or DEFAULT_PORT
        port = port or DEFAULT_PORT

    if not host:
        raise InvalidAddressError(f"address {address!r} has no host")
    return host, port


def extract_hostnames(addresses: Iterable[str | None]) -> list[str]:
    """Return hostnames from addresses, ports stripped, first-seen order, no duplicates.

    Unset (None or empty) entries and wildcard ":port" listeners are skipped.

    Raises:
        InvalidAddressError: If any address is malformed
    """
    hostnames: list[str] = []
    for address in addresses:
        if not address:
            continue
        host, _ = split_host_port(address)
        if host and host not in hostnames:
            hostnames.append(host)
    return hostnames
