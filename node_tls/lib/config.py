"""TLS and address configuration dataclasses."""

import argparse
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from cryptography import x509
from cryptography.x509 import oid

from .addresses import extract_hostnames

# 366 days per year so a lifetime never falls just short of N calendar years.
DEFAULT_CA_LIFETIME = timedelta(days=10 * 366)
DEFAULT_CERT_LIFETIME = timedelta(days=5 * 366)


@dataclass
class TLSConfig:
    """Certificate subject and lifetime settings shared by every slot."""

    country: str = "US"
    organization: str = "Cockroach"
    organizational_unit: str = "Cluster"
    ca_common_name: str = "Cockroach CA"
    node_user: str = "node"
    ca_lifetime: timedelta = DEFAULT_CA_LIFETIME
    cert_lifetime: timedelta = DEFAULT_CERT_LIFETIME
    key_size: int = 2048


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name."""

    country: str
    organization: str
    organizational_unit: str
    common_name: str

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        return x509.Name(
            [
                x509.NameAttribute(oid.NameOID.COUNTRY_NAME, self.country),
                x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization),
                x509.NameAttribute(oid.NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
                x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name),
            ]
        )


@dataclass
class AddressConfig:
    """Node listen/advertise addresses and certs directory.

    Empty advertise addresses are skipped when hostnames are extracted, so
    only the listen address contributes.
    """

    certs_dir: Path
    listen_addr: str = "localhost:26257"
    advertise_addr: str = ""
    sql_addr: str = ""
    sql_advertise_addr: str = ""
    split_listen_sql: bool = False
    http_addr: str = "localhost:8080"
    http_advertise_addr: str = ""

    def rpc_hostnames(self) -> list[str]:
        """Hostnames for the inter-node and RPC service certificates."""
        return extract_hostnames([self.listen_addr, self.advertise_addr])

    def sql_hostnames(self) -> list[str]:
        """Hostnames for the SQL certificate; the RPC set unless SQL listens separately."""
        if self.split_listen_sql:
            return extract_hostnames([self.sql_addr, self.sql_advertise_addr])
        return self.rpc_hostnames()

    def http_hostnames(self) -> list[str]:
        """Hostnames for the admin UI certificate."""
        return extract_hostnames([self.http_addr, self.http_advertise_addr])

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "AddressConfig":
        """Build from the flags registered by add_address_arguments."""
        return cls(
            certs_dir=args.certs_dir,
            listen_addr=args.listen_addr,
            advertise_addr=args.advertise_addr,
            sql_addr=args.sql_addr,
            sql_advertise_addr=args.sql_advertise_addr,
            split_listen_sql=bool(args.sql_addr),
            http_addr=args.http_addr,
            http_advertise_addr=args.http_advertise_addr,
        )


def add_address_arguments(parser: argparse.ArgumentParser) -> None:
    """Register certs directory and address flags shared by the scripts."""
    parser.add_argument(
        "--certs-dir",
        type=Path,
        required=True,
        help="Directory holding CA and host certificates",
    )
    parser.add_argument(
        "--listen-addr",
        default="localhost:26257",
        help="RPC listen address (default: localhost:26257)",
    )
    parser.add_argument("--advertise-addr", default="", help="RPC advertise address")
    parser.add_argument(
        "--sql-addr",
        default="",
        help="Separate SQL listen address; when unset SQL shares the RPC listener",
    )
    parser.add_argument("--sql-advertise-addr", default="", help="SQL advertise address")
    parser.add_argument(
        "--http-addr",
        default="localhost:8080",
        help="Admin UI listen address (default: localhost:8080)",
    )
    parser.add_argument("--http-advertise-addr", default="", help="Admin UI advertise address")
