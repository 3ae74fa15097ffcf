"""CA and host certificate material for a single service slot."""

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from .ca_provider import CAProvider
from .cert_paths import ServicePaths
from .credential_store import CERT_FILE_MODE, KEY_FILE_MODE, CredentialStore
from .errors import (
    AlreadyExistsError,
    CertificateError,
    CredentialNotFoundError,
    InconsistentPairError,
)
from .logging_config import LOGGER
from .models import CascadeOutcome


def check_pair(store: CredentialStore, cert_path: Path, key_path: Path) -> None:
    """Raise InconsistentPairError if exactly one of cert_path and key_path exists."""
    cert_exists = store.exists(cert_path)
    key_exists = store.exists(key_path)
    if cert_exists and not key_exists:
        raise InconsistentPairError(f"{cert_path} exists but its key {key_path} does not")
    if key_exists and not cert_exists:
        raise InconsistentPairError(f"{key_path} exists but its certificate {cert_path} does not")


@dataclass
class ServiceCertificateBundle:
    """PEM-encoded CA and host cert/key pairs for one slot.

    Host fields stay empty when only the CA half is held, as in a bundle
    collected for a joining node.
    """

    ca_certificate: bytes | None = None
    ca_key: bytes | None = None
    host_certificate: bytes | None = None
    host_key: bytes | None = None

    @property
    def has_ca(self) -> bool:
        return self.ca_certificate is not None and self.ca_key is not None

    @property
    def has_host_pair(self) -> bool:
        return self.host_certificate is not None and self.host_key is not None

    def check_pairs(self, store: CredentialStore, paths: ServicePaths) -> None:
        """Check both pairs on disk are whole or absent, without reading them."""
        check_pair(store, paths.ca_cert, paths.ca_key)
        check_pair(store, paths.host_cert, paths.host_key)

    def load_host_pair(self, store: CredentialStore, paths: ServicePaths) -> bool:
        """Load the host cert and key.

        Returns:
            False if the host certificate does not exist, True once both are loaded

        Raises:
            InconsistentPairError: If the cert exists but the key cannot be read, or the reverse
            CredentialIOError: If the cert exists but cannot be read
        """
        LOGGER.info("attempting to load service cert", extra={"path": str(paths.host_cert)})
        try:
            host_certificate = store.load(paths.host_cert)
        except CredentialNotFoundError:
            if store.exists(paths.host_key):
                raise InconsistentPairError(
                    f"service key {paths.host_key} exists without certificate {paths.host_cert}"
                ) from None
            return False

        LOGGER.info("found; loading service key", extra={"path": str(paths.host_key)})
        try:
            host_key = store.load(paths.host_key)
        except CertificateError as e:
            raise InconsistentPairError(
                f"failed to load service certificate key for {paths.host_cert}, "
                f"expected key at {paths.host_key}: {e.message}"
            ) from e

        self.host_certificate = host_certificate
        self.host_key = host_key
        return True

    def load_ca_if_exists(self, store: CredentialStore, paths: ServicePaths) -> bool:
        """Load the CA cert and key if the CA cert exists.

        Returns:
            False if the CA certificate does not exist, True once both are loaded

        Raises:
            InconsistentPairError: If the CA cert exists but the key cannot be read, or the reverse
            CredentialIOError: If the CA cert exists but cannot be read
        """
        LOGGER.info("attempting to load CA cert", extra={"path": str(paths.ca_cert)})
        try:
            ca_certificate = store.load(paths.ca_cert)
        except CredentialNotFoundError:
            if store.exists(paths.ca_key):
                raise InconsistentPairError(
                    f"CA key {paths.ca_key} exists without certificate {paths.ca_cert}"
                ) from None
            return False

        LOGGER.info("found; loading CA key", extra={"path": str(paths.ca_key)})
        try:
            ca_key = store.load(paths.ca_key)
        except CertificateError as e:
            raise InconsistentPairError(
                f"loaded CA cert but failed to load CA key {paths.ca_key}: {e.message}"
            ) from e

        self.ca_certificate = ca_certificate
        self.ca_key = ca_key
        return True

    def create_ca(
        self,
        store: CredentialStore,
        provider: CAProvider,
        paths: ServicePaths,
        lifetime: timedelta,
        common_name: str,
    ) -> None:
        """Generate a self-signed CA and persist it without overwriting.

        Raises:
            AlreadyExistsError: If either CA file appeared since it was looked for
        """
        ca_certificate, ca_key = provider.create_ca(lifetime, common_name)

        LOGGER.info("writing CA cert", extra={"path": str(paths.ca_cert)})
        store.store(paths.ca_cert, ca_certificate, CERT_FILE_MODE, overwrite=False)
        LOGGER.info("writing CA key", extra={"path": str(paths.ca_key)})
        store.store(paths.ca_key, ca_key, KEY_FILE_MODE, overwrite=False)

        self.ca_certificate = ca_certificate
        self.ca_key = ca_key

    def issue_host_cert(
        self,
        store: CredentialStore,
        provider: CAProvider,
        paths: ServicePaths,
        lifetime: timedelta,
        common_name: str,
        hostnames: list[str],
        dual_use: bool,
        overwrite: bool,
    ) -> None:
        """Sign a new host cert/key with the loaded CA and persist both.

        Raises:
            CredentialNotFoundError: If no CA is loaded
            AlreadyExistsError: If overwrite is False and a host file exists
        """
        if not self.has_ca:
            raise CredentialNotFoundError("no CA loaded to sign the service certificate")

        host_certificate, host_key = provider.create_leaf_cert(
            lifetime,
            common_name,
            hostnames,
            self.ca_certificate,
            self.ca_key,
            dual_use,
        )

        LOGGER.info("writing service cert", extra={"path": str(paths.host_cert)})
        store.store(paths.host_cert, host_certificate, CERT_FILE_MODE, overwrite=overwrite)
        LOGGER.info("writing service key", extra={"path": str(paths.host_key)})
        store.store(paths.host_key, host_key, KEY_FILE_MODE, overwrite=overwrite)

        self.host_certificate = host_certificate
        self.host_key = host_key

    def load_or_create(
        self,
        store: CredentialStore,
        provider: CAProvider,
        paths: ServicePaths,
        cert_lifetime: timedelta,
        ca_lifetime: timedelta,
        ca_common_name: str,
        common_name: str,
        hostnames: list[str],
        dual_use: bool,
    ) -> CascadeOutcome:
        """Load the host pair, or create whatever is missing to produce one.

        1. Host cert and key both present: nothing is written.
        2. Otherwise load the service CA.
        3. No CA on disk: create one.
        4. Issue and persist a host cert/key signed by the CA.
        """
        if self.load_host_pair(store, paths):
            LOGGER.info("service cert is ready")
            return CascadeOutcome.LOADED

        LOGGER.info("service cert not found; will attempt auto-creation")
        outcome = CascadeOutcome.ISSUED
        if not self.load_ca_if_exists(store, paths):
            LOGGER.info("CA cert does not exist, auto-creating")
            self.create_ca(store, provider, paths, ca_lifetime, ca_common_name)
            outcome = CascadeOutcome.CREATED_CA_AND_ISSUED

        self.issue_host_cert(
            store,
            provider,
            paths,
            cert_lifetime,
            common_name,
            hostnames,
            dual_use,
            overwrite=False,
        )
        return outcome

    def write_ca_only(self, store: CredentialStore, paths: ServicePaths) -> bool:
        """Persist only the CA half, never replacing existing files.

        Returns:
            False if this bundle holds no CA, True once both CA files are written

        Raises:
            InconsistentPairError: If only one of CA cert and key is held
            AlreadyExistsError: If either CA file already exists
        """
        if self.ca_certificate is None and self.ca_key is None:
            return False
        if not self.has_ca:
            raise InconsistentPairError("CA certificate and key must be supplied together")

        for path in (paths.ca_cert, paths.ca_key):
            if store.exists(path):
                raise AlreadyExistsError(f"refusing to overwrite existing CA file {path}")

        LOGGER.info("writing received CA cert", extra={"path": str(paths.ca_cert)})
        store.store(paths.ca_cert, self.ca_certificate, CERT_FILE_MODE, overwrite=False)
        LOGGER.info("writing received CA key", extra={"path": str(paths.ca_key)})
        store.store(paths.ca_key, self.ca_key, KEY_FILE_MODE, overwrite=False)
        return True

    def rotate_host_cert(
        self,
        store: CredentialStore,
        provider: CAProvider,
        paths: ServicePaths,
        lifetime: timedelta,
        common_name: str,
        hostnames: list[str],
        dual_use: bool,
    ) -> None:
        """Replace the existing host cert/key with a freshly signed pair.

        The CA is left untouched.

        Raises:
            CredentialNotFoundError: If no CA is loaded or a host file does not exist yet
        """
        for path in (paths.host_cert, paths.host_key):
            if not store.exists(path):
                raise CredentialNotFoundError(f"cannot rotate {path}: file does not exist")

        self.issue_host_cert(
            store,
            provider,
            paths,
            lifetime,
            common_name,
            hostnames,
            dual_use,
            overwrite=True,
        )
