#!/usr/bin/env python3
"""Initialize a node's CA and host certificates on first start."""

import argparse
import sys

from node_tls.lib.ca_provider import CryptographyCAProvider
from node_tls.lib.certificate_bundle import CertificateBundle
from node_tls.lib.config import AddressConfig, TLSConfig, add_address_arguments
from node_tls.lib.credential_store import add_store_arguments, create_credential_store
from node_tls.lib.errors import AlreadyInitializedError, CertificateError
from node_tls.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Bootstrap every service slot.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Create missing service CAs and host certificates for this node"
    )
    add_address_arguments(parser)
    add_store_arguments(parser)
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Complete an interrupted initialization (skips the already-initialized check)",
    )
    args = parser.parse_args(argv)

    try:
        config = TLSConfig()
        bundle = CertificateBundle(
            store=create_credential_store(args),
            provider=CryptographyCAProvider(config),
            config=config,
        )
        address_config = AddressConfig.from_args(args)

        if args.resume:
            LOGGER.info("Resuming certificate initialization in %s", args.certs_dir)
            result = bundle.load_or_create(address_config)
        else:
            LOGGER.info("Initializing certificates in %s", args.certs_dir)
            result = bundle.bootstrap(address_config)

        LOGGER.info("CAs created: %s", [slot.value for slot in result.created_cas])
        LOGGER.info("Host certs issued: %s", [slot.value for slot in result.issued_certs])
        LOGGER.info("Host certs already present: %s", [slot.value for slot in result.loaded_certs])
        return 0

    except AlreadyInitializedError as e:
        LOGGER.error("Node already initialized: %s", e)
        return 1
    except CertificateError as e:
        LOGGER.error("Certificate initialization failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
