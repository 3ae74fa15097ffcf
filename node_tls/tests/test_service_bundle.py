"""Tests for the per-slot load-or-create cascade."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from node_tls.lib.ca_provider import CryptographyCAProvider
from node_tls.lib.cert_paths import CertsLocator, ServicePaths
from node_tls.lib.cert_utils import deserialize_certificate, is_issued_by
from node_tls.lib.errors import (
    AlreadyExistsError,
    CredentialNotFoundError,
    InconsistentPairError,
)
from node_tls.lib.models import CascadeOutcome
from node_tls.lib.service_bundle import ServiceCertificateBundle, check_pair
from node_tls.lib.slots import ServiceSlot

from conftest import RecordingStore


@pytest.fixture
def paths(tmp_path: Path, locator: CertsLocator) -> ServicePaths:
    return locator.resolve(tmp_path, ServiceSlot.SQL_SERVICE)


def _cascade(
    bundle: ServiceCertificateBundle,
    store: RecordingStore,
    provider: CryptographyCAProvider,
    paths: ServicePaths,
) -> CascadeOutcome:
    return bundle.load_or_create(
        store,
        provider,
        paths,
        cert_lifetime=timedelta(days=30),
        ca_lifetime=timedelta(days=60),
        ca_common_name="Test CA",
        common_name="node",
        hostnames=["10.0.0.1"],
        dual_use=False,
    )


class TestCheckPair:
    """Tests for check_pair."""

    def test_both_or_neither(self, store: RecordingStore, tmp_path: Path) -> None:
        check_pair(store, tmp_path / "a.crt", tmp_path / "a.key")
        (tmp_path / "a.crt").write_bytes(b"c")
        (tmp_path / "a.key").write_bytes(b"k")
        check_pair(store, tmp_path / "a.crt", tmp_path / "a.key")

    def test_cert_only(self, store: RecordingStore, tmp_path: Path) -> None:
        (tmp_path / "a.crt").write_bytes(b"c")

        with pytest.raises(InconsistentPairError):
            check_pair(store, tmp_path / "a.crt", tmp_path / "a.key")

    def test_key_only(self, store: RecordingStore, tmp_path: Path) -> None:
        (tmp_path / "a.key").write_bytes(b"k")

        with pytest.raises(InconsistentPairError):
            check_pair(store, tmp_path / "a.crt", tmp_path / "a.key")


class TestLoadOrCreate:
    """Tests for ServiceCertificateBundle.load_or_create."""

    def test_creates_ca_and_host_pair(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        bundle = ServiceCertificateBundle()

        outcome = _cascade(bundle, store, provider, paths)

        assert outcome is CascadeOutcome.CREATED_CA_AND_ISSUED
        assert [path for path, _ in store.writes] == [
            paths.ca_cert,
            paths.ca_key,
            paths.host_cert,
            paths.host_key,
        ]
        assert bundle.has_ca
        assert bundle.has_host_pair
        assert is_issued_by(
            deserialize_certificate(bundle.host_certificate),
            deserialize_certificate(bundle.ca_certificate),
        )

    def test_issues_from_existing_ca(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        ca_cert, ca_key = provider.create_ca(timedelta(days=60), "Existing CA")
        paths.ca_cert.write_bytes(ca_cert)
        paths.ca_key.write_bytes(ca_key)

        outcome = _cascade(ServiceCertificateBundle(), store, provider, paths)

        assert outcome is CascadeOutcome.ISSUED
        assert [path for path, _ in store.writes] == [paths.host_cert, paths.host_key]
        assert paths.ca_cert.read_bytes() == ca_cert

    def test_loads_existing_host_pair_without_reading_ca(
        self,
        store: RecordingStore,
        paths: ServicePaths,
    ) -> None:
        """A present host pair short-circuits the cascade; the CA is not needed."""
        paths.host_cert.write_bytes(b"host cert")
        paths.host_key.write_bytes(b"host key")
        provider = MagicMock()

        bundle = ServiceCertificateBundle()
        outcome = _cascade(bundle, store, provider, paths)

        assert outcome is CascadeOutcome.LOADED
        assert bundle.host_certificate == b"host cert"
        assert bundle.ca_certificate is None
        assert store.writes == []
        provider.create_ca.assert_not_called()
        provider.create_leaf_cert.assert_not_called()

    def test_host_cert_without_key(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        paths.host_cert.write_bytes(b"host cert")

        with pytest.raises(InconsistentPairError):
            _cascade(ServiceCertificateBundle(), store, provider, paths)
        assert store.writes == []

    def test_host_key_without_cert(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        """An orphan key is never overwritten by a fresh pair."""
        paths.host_key.write_bytes(b"host key")

        with pytest.raises(InconsistentPairError):
            _cascade(ServiceCertificateBundle(), store, provider, paths)
        assert paths.host_key.read_bytes() == b"host key"

    def test_ca_cert_without_key(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        paths.ca_cert.write_bytes(b"ca cert")

        with pytest.raises(InconsistentPairError):
            _cascade(ServiceCertificateBundle(), store, provider, paths)
        assert store.writes == []


class TestWriteCAOnly:
    """Tests for ServiceCertificateBundle.write_ca_only."""

    def test_writes_ca_half(self, store: RecordingStore, paths: ServicePaths) -> None:
        bundle = ServiceCertificateBundle(ca_certificate=b"cert", ca_key=b"key")

        assert bundle.write_ca_only(store, paths) is True
        assert paths.ca_cert.read_bytes() == b"cert"
        assert paths.ca_key.stat().st_mode & 0o777 == 0o600
        assert not paths.host_cert.exists()

    def test_nothing_held(self, store: RecordingStore, paths: ServicePaths) -> None:
        assert ServiceCertificateBundle().write_ca_only(store, paths) is False
        assert store.writes == []

    def test_half_pair(self, store: RecordingStore, paths: ServicePaths) -> None:
        with pytest.raises(InconsistentPairError):
            ServiceCertificateBundle(ca_key=b"key").write_ca_only(store, paths)

    def test_existing_key_blocks_both_writes(
        self, store: RecordingStore, paths: ServicePaths
    ) -> None:
        paths.ca_key.write_bytes(b"old key")

        with pytest.raises(AlreadyExistsError):
            ServiceCertificateBundle(ca_certificate=b"cert", ca_key=b"key").write_ca_only(
                store, paths
            )
        assert store.writes == []
        assert not paths.ca_cert.exists()


class TestRotateHostCert:
    """Tests for ServiceCertificateBundle.rotate_host_cert."""

    def _rotate(
        self,
        bundle: ServiceCertificateBundle,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        bundle.rotate_host_cert(
            store,
            provider,
            paths,
            lifetime=timedelta(days=30),
            common_name="node",
            hostnames=["10.0.0.1"],
            dual_use=False,
        )

    def test_replaces_host_pair(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        bundle = ServiceCertificateBundle()
        _cascade(bundle, store, provider, paths)
        old_cert = paths.host_cert.read_bytes()
        old_ca = paths.ca_cert.read_bytes()
        store.writes.clear()

        self._rotate(bundle, store, provider, paths)

        assert store.writes == [(paths.host_cert, True), (paths.host_key, True)]
        assert paths.host_cert.read_bytes() != old_cert
        assert paths.ca_cert.read_bytes() == old_ca

    def test_requires_existing_host_files(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        """Rotation replaces; it never creates a host pair from nothing."""
        ca_cert, ca_key = provider.create_ca(timedelta(days=60), "Test CA")
        bundle = ServiceCertificateBundle(ca_certificate=ca_cert, ca_key=ca_key)

        with pytest.raises(CredentialNotFoundError):
            self._rotate(bundle, store, provider, paths)
        assert store.writes == []

    def test_requires_loaded_ca(
        self,
        store: RecordingStore,
        provider: CryptographyCAProvider,
        paths: ServicePaths,
    ) -> None:
        paths.host_cert.write_bytes(b"cert")
        paths.host_key.write_bytes(b"key")

        with pytest.raises(CredentialNotFoundError, match="no CA loaded"):
            self._rotate(ServiceCertificateBundle(), store, provider, paths)
