"""SSM credential store for keeping node certificates in AWS Parameter Store."""

from pathlib import Path

import boto3
from botocore.exceptions import ClientError

from .errors import (
    AlreadyExistsError,
    CredentialIOError,
    CredentialNotFoundError,
    PermissionDeniedError,
)

_ACCESS_DENIED_CODES = {"AccessDeniedException", "AccessDenied"}


class SSMCredentialStore:
    """CredentialStore backed by SSM parameters.

    A path maps to the parameter ``{prefix}/{path}``. Private keys (mode with
    no group/other bits) are stored as SecureString, certificates as String.
    """

    def __init__(self, prefix: str = "/node-tls", region: str = "eu-west-2") -> None:
        """Initialize SSM client.

        Args:
            prefix: Parameter name prefix (e.g., '/node-tls/prod')
            region: AWS region for SSM client
        """
        self.prefix = "/" + prefix.strip("/")
        self.client = boto3.client("ssm", region_name=region)

    def parameter_name(self, path: Path) -> str:
        """Return the parameter name for a credential path."""
        return f"{self.prefix}/{path.as_posix().lstrip('/')}"

    def _translate_client_error(self, e: ClientError, action: str, name: str) -> Exception:
        error_code = e.response.get("Error", {}).get("Code", "")
        if error_code == "ParameterNotFound":
            return CredentialNotFoundError(f"parameter {name} not found")
        if error_code == "ParameterAlreadyExists":
            return AlreadyExistsError(f"parameter {name} already exists")
        if error_code in _ACCESS_DENIED_CODES:
            return PermissionDeniedError(f"permission denied to {action} parameter {name}")
        return CredentialIOError(f"failed to {action} parameter {name}: {error_code or e}")

    def load(self, path: Path) -> bytes:
        """Fetch a parameter value as bytes.

        Raises:
            CredentialNotFoundError: If the parameter does not exist
            PermissionDeniedError: If access is denied
            CredentialIOError: On any other SSM error
        """
        name = self.parameter_name(path)
        try:
            response = self.client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            raise self._translate_client_error(e, "read", name) from e
        return response["Parameter"]["Value"].encode("utf-8")

    def store(self, path: Path, data: bytes, mode: int, overwrite: bool) -> None:
        """Write a parameter.

        Raises:
            AlreadyExistsError: If overwrite is False and the parameter exists
            PermissionDeniedError: If access is denied
            CredentialIOError: On any other SSM error
        """
        name = self.parameter_name(path)
        param_type = "String" if mode & 0o077 else "SecureString"
        try:
            self.client.put_parameter(
                Name=name,
                Value=data.decode("utf-8"),
                Type=param_type,
                Overwrite=overwrite,
            )
        except ClientError as e:
            raise self._translate_client_error(e, "write", name) from e

    def exists(self, path: Path) -> bool:
        """Check whether the parameter exists."""
        try:
            self.load(path)
        except CredentialNotFoundError:
            return False
        return True

    def ensure_directory(self, path: Path) -> None:
        """Parameter hierarchies need no creation."""
