#!/usr/bin/env python3
"""Export this node's service CAs for a node joining the cluster."""

import argparse
import sys
from pathlib import Path

from node_tls.lib.ca_provider import CryptographyCAProvider
from node_tls.lib.certificate_bundle import CertificateBundle, encode_transfer_payload
from node_tls.lib.config import TLSConfig
from node_tls.lib.credential_store import (
    KEY_FILE_MODE,
    FileCredentialStore,
    add_store_arguments,
    create_credential_store,
)
from node_tls.lib.errors import CertificateError
from node_tls.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Write the CA transfer payload.

    The payload holds CA private keys; it is written with mode 0600.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Collect local service CAs into a bundle")
    parser.add_argument(
        "--certs-dir",
        type=Path,
        required=True,
        help="Directory holding CA and host certificates",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Bundle output path (e.g., ca-bundle.json)",
    )
    add_store_arguments(parser)
    args = parser.parse_args(argv)

    try:
        config = TLSConfig()
        bundle = CertificateBundle(
            store=create_credential_store(args),
            provider=CryptographyCAProvider(config),
            config=config,
        )

        cas = bundle.collect_local_bundle(args.certs_dir)
        payload = encode_transfer_payload(cas)

        args.output.parent.mkdir(parents=True, exist_ok=True)
        FileCredentialStore().store(args.output, payload, KEY_FILE_MODE, overwrite=True)

        LOGGER.info("CA bundle written: %s", args.output)
        LOGGER.info("  CAs included: %s", [slot.value for slot, ca in cas.items() if ca.has_ca])
        return 0

    except CertificateError as e:
        LOGGER.error("CA collection failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
