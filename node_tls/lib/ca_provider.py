"""CA provider: key generation and signing for service CAs and host certificates."""

from datetime import timedelta
from typing import Protocol

from cryptography import x509

from .cert_utils import (
    deserialize_private_key,
    generate_private_key,
    parse_certificates,
    serialize_certificate,
    serialize_private_key,
)
from .certificate_builder import CertificateBuilder
from .config import DistinguishedName, TLSConfig
from .errors import CertificateProviderError


class CAProvider(Protocol):
    """Creates CA and leaf certificate/key pairs as PEM bytes."""

    def create_ca(self, lifetime: timedelta, common_name: str) -> tuple[bytes, bytes]: ...

    def create_leaf_cert(
        self,
        lifetime: timedelta,
        common_name: str,
        hostnames: list[str],
        issuer_cert_pem: bytes,
        issuer_key_pem: bytes,
        dual_use: bool,
    ) -> tuple[bytes, bytes]: ...

    def parse_certificates(self, pem_data: bytes) -> list[x509.Certificate]: ...


def build_dn_from_config(config: TLSConfig, common_name: str) -> DistinguishedName:
    """Build DN from TLSConfig fields + common_name."""
    return DistinguishedName(
        country=config.country,
        organization=config.organization,
        organizational_unit=config.organizational_unit,
        common_name=common_name,
    )


class CryptographyCAProvider:
    """CAProvider backed by the cryptography package (RSA keys, SHA-256 signatures)."""

    def __init__(self, config: TLSConfig) -> None:
        """Initialize provider with configuration.

        Args:
            config: TLS configuration with key size and subject template
        """
        self.config = config

    def create_ca(self, lifetime: timedelta, common_name: str) -> tuple[bytes, bytes]:
        """Generate a self-signed CA.

        Returns:
            Tuple of (certificate_pem, private_key_pem)

        Raises:
            CertificateProviderError: If key generation or signing fails
        """
        try:
            ca_key = generate_private_key(self.config.key_size)
            ca_cert = CertificateBuilder.build_ca(
                subject_dn=build_dn_from_config(self.config, common_name),
                private_key=ca_key,
                lifetime=lifetime,
            )
        except (ValueError, TypeError) as e:
            raise CertificateProviderError(f"failed to create CA {common_name!r}: {e}") from e

        return serialize_certificate(ca_cert), serialize_private_key(ca_key)

    def create_leaf_cert(
        self,
        lifetime: timedelta,
        common_name: str,
        hostnames: list[str],
        issuer_cert_pem: bytes,
        issuer_key_pem: bytes,
        dual_use: bool,
    ) -> tuple[bytes, bytes]:
        """Generate a host key and a certificate for it signed by the given CA.

        The first certificate in issuer_cert_pem is used as the issuer.

        Returns:
            Tuple of (certificate_pem, private_key_pem)

        Raises:
            CertificateProviderError: If the CA material cannot be decoded or signing fails
        """
        issuer_cert = self.parse_certificates(issuer_cert_pem)[0]
        try:
            issuer_key = deserialize_private_key(issuer_key_pem)
        except (ValueError, TypeError) as e:
            raise CertificateProviderError(f"failed to decode CA key: {e}") from e

        try:
            host_key = generate_private_key(self.config.key_size)
            host_cert = CertificateBuilder.build_service_certificate(
                subject_dn=build_dn_from_config(self.config, common_name),
                public_key=host_key.public_key(),
                issuer_cert=issuer_cert,
                issuer_key=issuer_key,
                lifetime=lifetime,
                hostnames=hostnames,
                dual_use=dual_use,
            )
        except (ValueError, TypeError) as e:
            raise CertificateProviderError(
                f"failed to create certificate for {common_name!r}: {e}"
            ) from e

        return serialize_certificate(host_cert), serialize_private_key(host_key)

    def parse_certificates(self, pem_data: bytes) -> list[x509.Certificate]:
        """Decode a PEM certificate chain."""
        return parse_certificates(pem_data)
