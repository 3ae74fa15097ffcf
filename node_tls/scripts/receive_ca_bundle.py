#!/usr/bin/env python3
"""Initialize a joining node from CAs received from a cluster member."""

import argparse
import sys
from pathlib import Path

from node_tls.lib.ca_provider import CryptographyCAProvider
from node_tls.lib.certificate_bundle import CertificateBundle, decode_transfer_payload
from node_tls.lib.config import AddressConfig, TLSConfig, add_address_arguments
from node_tls.lib.credential_store import add_store_arguments, create_credential_store
from node_tls.lib.errors import CertificateError
from node_tls.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Install received CAs and issue this node's host certificates.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Initialize node certificates from a received CA bundle"
    )
    parser.add_argument(
        "--bundle",
        type=Path,
        required=True,
        help="CA bundle produced by collect_ca_bundle.py",
    )
    add_address_arguments(parser)
    add_store_arguments(parser)
    args = parser.parse_args(argv)

    try:
        supplied_cas = decode_transfer_payload(args.bundle.read_bytes())
    except OSError as e:
        LOGGER.error("Cannot read CA bundle %s: %s", args.bundle, e)
        return 1
    except CertificateError as e:
        LOGGER.error("Invalid CA bundle: %s", e)
        return 1

    try:
        config = TLSConfig()
        bundle = CertificateBundle(
            store=create_credential_store(args),
            provider=CryptographyCAProvider(config),
            config=config,
        )

        LOGGER.info("Installing %d received CAs into %s", len(supplied_cas), args.certs_dir)
        result = bundle.receive_bundle(supplied_cas, AddressConfig.from_args(args))

        LOGGER.info("Host certs issued: %s", [slot.value for slot in result.issued_certs])
        if result.created_cas:
            LOGGER.warning(
                "CAs missing from bundle were generated locally: %s",
                [slot.value for slot in result.created_cas],
            )
        return 0

    except CertificateError as e:
        LOGGER.error("Node initialization from bundle failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
