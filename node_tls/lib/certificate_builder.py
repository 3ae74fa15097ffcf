"""Certificate builder for X.509 CA and service certificate construction."""

import ipaddress
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from .cert_utils import generate_serial_number
from .config import DistinguishedName


def hostname_to_general_name(hostname: str) -> x509.GeneralName:
    """Map a hostname to an IPAddress SAN for IP literals, a DNSName otherwise."""
    try:
        return x509.IPAddress(ipaddress.ip_address(hostname))
    except ValueError:
        return x509.DNSName(hostname)


class CertificateBuilder:
    """Builds X.509 certificates for per-service CAs and their host certificates."""

    @staticmethod
    def build_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        lifetime: timedelta,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject
            private_key: RSA private key for signing
            lifetime: Certificate validity period

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        not_before = datetime.now(timezone.utc)
        not_after = not_before + lifetime

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=False,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
                critical=False,
            )
        )

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_service_certificate(
        subject_dn: DistinguishedName,
        public_key: RSAPublicKey,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        lifetime: timedelta,
        hostnames: list[str],
        dual_use: bool,
    ) -> x509.Certificate:
        """Build a service (host) certificate signed by a service CA.

        The certificate never outlives its issuer: the expiry is capped at the
        CA's own expiry.

        Args:
            subject_dn: Distinguished name for certificate subject
            public_key: Public half of the service key
            issuer_cert: Service CA certificate (issuer)
            issuer_key: Service CA private key for signing
            lifetime: Requested validity period
            hostnames: SAN entries; no SAN extension when empty
            dual_use: Also valid for TLS client authentication

        Returns:
            X.509 end-entity certificate signed by the service CA
        """
        not_before = datetime.now(timezone.utc)
        not_after = min(not_before + lifetime, issuer_cert.not_valid_after_utc)

        usages = [ExtendedKeyUsageOID.SERVER_AUTH]
        if dual_use:
            usages.append(ExtendedKeyUsageOID.CLIENT_AUTH)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject_dn.to_x509_name())
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.ExtendedKeyUsage(usages), critical=False)
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
                critical=False,
            )
        )

        if hostnames:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([hostname_to_general_name(h) for h in hostnames]),
                critical=False,
            )

        return builder.sign(issuer_key, hashes.SHA256())
