"""Canonical certificate file names per service slot."""

from dataclasses import dataclass
from pathlib import Path

from .slots import ServiceSlot


@dataclass(frozen=True)
class ServicePaths:
    """Locations of one slot's CA and host artifacts."""

    ca_cert: Path
    ca_key: Path
    host_cert: Path
    host_key: Path


# slot -> (CA file stem, host file stem)
_FILE_STEMS: dict[ServiceSlot, tuple[str, str]] = {
    ServiceSlot.INTER_NODE: ("ca", "node"),
    ServiceSlot.USER_AUTH: ("ca-client", "client.node"),
    ServiceSlot.SQL_SERVICE: ("ca-sql-service", "sql-service"),
    ServiceSlot.RPC_SERVICE: ("ca-rpc-service", "rpc-service"),
    ServiceSlot.ADMIN_UI_SERVICE: ("ca-ui", "ui"),
}


class CertsLocator:
    """Maps a certs directory and slot to the slot's file paths."""

    def resolve(self, certs_dir: Path, slot: ServiceSlot) -> ServicePaths:
        ca_stem, host_stem = _FILE_STEMS[slot]
        return ServicePaths(
            ca_cert=certs_dir / f"{ca_stem}.crt",
            ca_key=certs_dir / f"{ca_stem}.key",
            host_cert=certs_dir / f"{host_stem}.crt",
            host_key=certs_dir / f"{host_stem}.key",
        )
