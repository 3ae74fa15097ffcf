#!/usr/bin/env python3
"""Rotate host certificates, keeping every service CA."""

import argparse
import sys

from node_tls.lib.ca_provider import CryptographyCAProvider
from node_tls.lib.certificate_bundle import CertificateBundle
from node_tls.lib.config import AddressConfig, TLSConfig, add_address_arguments
from node_tls.lib.credential_store import add_store_arguments, create_credential_store
from node_tls.lib.errors import CertificateError
from node_tls.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Re-issue the host certificate of every slot with a CA.

    Services are not restarted; restart the node to pick up the new certificates.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Re-issue host certificates signed by the existing service CAs"
    )
    add_address_arguments(parser)
    add_store_arguments(parser)
    args = parser.parse_args(argv)

    try:
        config = TLSConfig()
        bundle = CertificateBundle(
            store=create_credential_store(args),
            provider=CryptographyCAProvider(config),
            config=config,
        )

        LOGGER.info("Rotating host certificates in %s", args.certs_dir)
        result = bundle.rotate(AddressConfig.from_args(args))

        LOGGER.info("Certificate rotation complete:")
        LOGGER.info("  Rotated: %s", [slot.value for slot in result.rotated])
        LOGGER.info("  Skipped (no CA): %s", [slot.value for slot in result.skipped])
        return 0

    except CertificateError as e:
        LOGGER.error("Certificate rotation failed: %s", e)
        LOGGER.error("Fix the cause and rerun; already rotated slots will be rotated again")
        return 1


if __name__ == "__main__":
    sys.exit(main())
