"""Credential stores for PEM blobs with write-once semantics."""

import argparse
import os
from pathlib import Path
from typing import Protocol

from .errors import (
    AlreadyExistsError,
    CredentialIOError,
    CredentialNotFoundError,
    PermissionDeniedError,
)
from .logging_config import LOGGER

CERT_FILE_MODE = 0o644
KEY_FILE_MODE = 0o600
CERTS_DIR_MODE = 0o700


class CredentialStore(Protocol):
    """Loads and stores byte blobs addressed by path."""

    def load(self, path: Path) -> bytes: ...

    def store(self, path: Path, data: bytes, mode: int, overwrite: bool) -> None: ...

    def exists(self, path: Path) -> bool: ...

    def ensure_directory(self, path: Path) -> None: ...


def _translate_os_error(e: OSError, action: str, path: Path) -> Exception:
    """Map an OSError to the credential error taxonomy."""
    if isinstance(e, FileNotFoundError):
        return CredentialNotFoundError(f"{path} not found")
    if isinstance(e, FileExistsError):
        return AlreadyExistsError(f"{path} already exists")
    if isinstance(e, PermissionError):
        return PermissionDeniedError(f"permission denied to {action} {path}")
    return CredentialIOError(f"failed to {action} {path}: {e}")


class FileCredentialStore:
    """CredentialStore on the local filesystem."""

    def load(self, path: Path) -> bytes:
        """Read a file.

        Raises:
            CredentialNotFoundError: If the file does not exist
            PermissionDeniedError: If the file cannot be opened for reading
            CredentialIOError: On any other read failure
        """
        try:
            return path.read_bytes()
        except OSError as e:
            raise _translate_os_error(e, "read", path) from e

    def store(self, path: Path, data: bytes, mode: int, overwrite: bool) -> None:
        """Write a file with the given permission bits.

        Without overwrite the file is created exclusively, so an existing file
        is detected in the same step as the write.

        Raises:
            AlreadyExistsError: If overwrite is False and the file exists
            PermissionDeniedError: If the file cannot be opened for writing
            CredentialIOError: On any other write failure
        """
        flags = os.O_WRONLY | os.O_CREAT
        flags |= os.O_TRUNC if overwrite else os.O_EXCL
        try:
            fd = os.open(path, flags, mode)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            # umask may have narrowed the mode; existing files keep their old mode
            os.chmod(path, mode)
        except OSError as e:
            raise _translate_os_error(e, "write", path) from e

    def exists(self, path: Path) -> bool:
        try:
            os.stat(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise _translate_os_error(e, "stat", path) from e
        return True

    def ensure_directory(self, path: Path) -> None:
        """Create the certs directory (mode 0700) if missing."""
        if path.is_dir():
            return
        LOGGER.info("creating certs directory", extra={"path": str(path)})
        try:
            path.mkdir(mode=CERTS_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise _translate_os_error(e, "create", path) from e


def add_store_arguments(parser: argparse.ArgumentParser) -> None:
    """Register credential store selection flags shared by the scripts."""
    parser.add_argument(
        "--store",
        choices=["file", "ssm"],
        default="file",
        help="Where certificates are kept (default: file)",
    )
    parser.add_argument(
        "--ssm-prefix",
        default="/node-tls",
        help="Parameter name prefix when --store=ssm (default: /node-tls)",
    )
    parser.add_argument(
        "--region",
        default="eu-west-2",
        help="AWS region when --store=ssm (default: eu-west-2)",
    )


def create_credential_store(args: argparse.Namespace) -> CredentialStore:
    """Build the store selected by add_store_arguments flags."""
    if args.store == "ssm":
        from .ssm_client import SSMCredentialStore

        return SSMCredentialStore(prefix=args.ssm_prefix, region=args.region)
    return FileCredentialStore()
