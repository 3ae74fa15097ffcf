"""Certificate utility functions for key generation, serialization, and chain checks."""

import uuid

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from node_tls.lib.errors import CertificateProviderError


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def parse_certificates(pem_data: bytes) -> list[x509.Certificate]:
    """Parse every certificate in a PEM chain, leaf first.

    Raises:
        CertificateProviderError: If the data holds no certificate or a block is malformed
    """
    try:
        certs = x509.load_pem_x509_certificates(pem_data)
    except ValueError as e:
        raise CertificateProviderError(f"failed to decode PEM certificates: {e}") from e
    if not certs:
        raise CertificateProviderError("no certificates found in PEM data")
    return certs


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4.

    Uses UUID v4 (random) for 128-bit serial numbers with ~122 bits of
    entropy, above the 64-bit CSPRNG minimum.

    Returns:
        Integer serial number for x509.CertificateBuilder.serial_number()
    """
    return uuid.uuid4().int


def get_common_name(cert: x509.Certificate) -> str:
    """Return the subject CN of a certificate."""
    cn = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)[0].value
    if not isinstance(cn, str):
        raise ValueError("CN must be string")
    return cn


def is_issued_by(cert: x509.Certificate, issuer_cert: x509.Certificate) -> bool:
    """Verify cert is directly signed by issuer_cert.

    Returns True if the signature and issuer name check out, False otherwise.
    """
    try:
        cert.verify_directly_issued_by(issuer_cert)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False
