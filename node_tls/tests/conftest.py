"""Test fixtures for node_tls tests."""

from collections.abc import Callable
from datetime import timedelta
from pathlib import Path

import pytest

from node_tls.lib.ca_provider import CryptographyCAProvider
from node_tls.lib.cert_paths import CertsLocator
from node_tls.lib.certificate_bundle import CertificateBundle
from node_tls.lib.config import AddressConfig, TLSConfig
from node_tls.lib.credential_store import FileCredentialStore
from node_tls.lib.service_bundle import ServiceCertificateBundle
from node_tls.lib.slots import SLOT_ORDER, ServiceSlot


class RecordingStore(FileCredentialStore):
    """FileCredentialStore that records every store() call."""

    def __init__(self) -> None:
        self.writes: list[tuple[Path, bool]] = []

    def store(self, path: Path, data: bytes, mode: int, overwrite: bool) -> None:
        self.writes.append((path, overwrite))
        super().store(path, data, mode, overwrite)


@pytest.fixture
def tls_config() -> TLSConfig:
    """Return test TLS configuration with the default lifetimes and small keys."""
    return TLSConfig(
        country="US",
        organization="Test Org",
        organizational_unit="Test Unit",
        ca_common_name="Test CA",
        node_user="node",
        ca_lifetime=timedelta(days=10 * 366),
        cert_lifetime=timedelta(days=5 * 366),
        key_size=2048,  # Faster for tests
    )


@pytest.fixture
def provider(tls_config: TLSConfig) -> CryptographyCAProvider:
    """Return CA provider using the test configuration."""
    return CryptographyCAProvider(tls_config)


@pytest.fixture
def store() -> RecordingStore:
    """Return filesystem store that records writes."""
    return RecordingStore()


@pytest.fixture
def locator() -> CertsLocator:
    return CertsLocator()


@pytest.fixture
def certs_dir(tmp_path: Path) -> Path:
    """Return a certs directory path that does not exist yet."""
    return tmp_path / "certs"


@pytest.fixture
def address_config(certs_dir: Path) -> AddressConfig:
    """Return node addresses with distinct RPC, SQL and HTTP hosts."""
    return AddressConfig(
        certs_dir=certs_dir,
        listen_addr="10.0.0.1:26257",
        advertise_addr="node1.example.com:26257",
        sql_addr="10.0.0.1:26258",
        sql_advertise_addr="sql.example.com:26258",
        split_listen_sql=True,
        http_addr="ui.example.com:8080",
        http_advertise_addr="10.0.0.1:8080",
    )


@pytest.fixture
def make_bundle(
    store: RecordingStore, provider: CryptographyCAProvider, tls_config: TLSConfig
) -> Callable[[], CertificateBundle]:
    """Return factory for fresh CertificateBundle instances sharing one store."""

    def _make() -> CertificateBundle:
        return CertificateBundle(store=store, provider=provider, config=tls_config)

    return _make


@pytest.fixture
def supplied_cas(
    provider: CryptographyCAProvider, tls_config: TLSConfig
) -> dict[ServiceSlot, ServiceCertificateBundle]:
    """Generate an independent CA pair for every slot."""
    cas = {}
    for slot in SLOT_ORDER:
        ca_cert, ca_key = provider.create_ca(tls_config.ca_lifetime, f"Supplied CA {slot.value}")
        cas[slot] = ServiceCertificateBundle(ca_certificate=ca_cert, ca_key=ca_key)
    return cas


@pytest.fixture
def read_certs_dir(certs_dir: Path) -> Callable[[], dict[str, bytes]]:
    """Return function reading file name -> contents for every file in certs_dir."""

    def _snapshot() -> dict[str, bytes]:
        if not certs_dir.exists():
            return {}
        return {p.name: p.read_bytes() for p in sorted(certs_dir.iterdir()) if p.is_file()}

    return _snapshot
