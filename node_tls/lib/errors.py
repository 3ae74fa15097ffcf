"""Exception hierarchy for node certificate operations."""


class CertificateError(Exception):
    """Base error for certificate lifecycle operations.

    Carries the slot and operation in progress so a caller can report which
    trust domain failed without parsing the message.
    """

    def __init__(self, message: str, slot: str | None = None, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.slot = slot
        self.operation = operation

    def annotate(self, slot: str | None, operation: str) -> "CertificateError":
        """Attach slot and operation context, keeping any context already set."""
        if self.slot is None:
            self.slot = slot
        if self.operation is None:
            self.operation = operation
        return self

    def __str__(self) -> str:
        if self.slot is None and self.operation is None:
            return self.message
        context = ", ".join(
            f"{name}={value}"
            for name, value in (("slot", self.slot), ("operation", self.operation))
            if value is not None
        )
        return f"{self.message} ({context})"


class CredentialNotFoundError(CertificateError):
    """Requested credential does not exist in the store."""


class AlreadyExistsError(CertificateError):
    """Write-once target already exists."""


class CredentialIOError(CertificateError):
    """Credential could not be read or written."""


class PermissionDeniedError(CredentialIOError):
    """Credential store refused access."""


class InconsistentPairError(CertificateError):
    """Certificate present without its matching key, or the reverse."""


class InvalidAddressError(CertificateError):
    """Listen or advertise address could not be parsed."""


class AlreadyInitializedError(AlreadyExistsError):
    """Node already holds an inter-node certificate."""


class CertificateProviderError(CertificateError):
    """Key generation, signing, or PEM decoding failed."""
