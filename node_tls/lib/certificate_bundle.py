"""Certificate bundle manager: bootstrap, node join, CA collection, and rotation."""

import json
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path

from .ca_provider import CAProvider
from .cert_paths import CertsLocator, ServicePaths
from .config import AddressConfig, TLSConfig
from .credential_store import CredentialStore
from .errors import AlreadyInitializedError, CertificateError, InconsistentPairError
from .logging_config import LOGGER
from .models import BootstrapResult, RotationResult
from .service_bundle import ServiceCertificateBundle
from .slots import SERVICE_CONFIGS, SLOT_ORDER, ServiceSlot, resolve_identity

TRANSFER_PAYLOAD_VERSION = 1


@contextmanager
def _slot_context(slot: ServiceSlot | None, operation: str) -> Iterator[None]:
    """Annotate certificate errors raised in the block with slot and operation.

    Steps that span every slot pass slot=None and carry only the operation.
    """
    try:
        yield
    except CertificateError as e:
        e.annotate(slot.value if slot is not None else None, operation)
        raise


class CertificateBundle:
    """The five service certificate bundles of one node.

    Build a fresh instance per workflow; all durable state lives in the
    credential store.
    """

    def __init__(
        self,
        store: CredentialStore,
        provider: CAProvider,
        config: TLSConfig,
        locator: CertsLocator | None = None,
    ) -> None:
        """Initialize bundle with its collaborators.

        Args:
            store: Credential store holding the PEM files
            provider: CA provider used to generate and sign
            config: TLS configuration with lifetimes and subject template
            locator: Path resolver for slot artifacts
        """
        self.store = store
        self.provider = provider
        self.config = config
        self.locator = locator or CertsLocator()
        self.services: dict[ServiceSlot, ServiceCertificateBundle] = {
            slot: ServiceCertificateBundle() for slot in SLOT_ORDER
        }

    def __getitem__(self, slot: ServiceSlot) -> ServiceCertificateBundle:
        return self.services[slot]

    def paths(self, certs_dir: Path, slot: ServiceSlot) -> ServicePaths:
        return self.locator.resolve(certs_dir, slot)

    def _ensure_not_initialized(self, certs_dir: Path) -> None:
        """Refuse to run first-boot workflows on a node that has an inter-node cert."""
        node_cert = self.paths(certs_dir, ServiceSlot.INTER_NODE).host_cert
        with _slot_context(ServiceSlot.INTER_NODE, "initialization check"):
            initialized = self.store.exists(node_cert)
        if initialized:
            raise AlreadyInitializedError(
                f"inter-node certificate already present at {node_cert}",
                slot=ServiceSlot.INTER_NODE.value,
                operation="initialization check",
            )

    def _resolve_identities(
        self, address_config: AddressConfig
    ) -> dict[ServiceSlot, tuple[str, list[str]]]:
        """Resolve every slot's common name and hostnames before anything is written."""
        identities = {}
        for slot in SLOT_ORDER:
            with _slot_context(slot, "resolve hostnames"):
                identities[slot] = resolve_identity(slot, address_config, self.config)
        return identities

    def _ensure_certs_directory(self, certs_dir: Path) -> None:
        with _slot_context(None, "create certs directory"):
            self.store.ensure_directory(certs_dir)

    def _check_disk_pairs(self, certs_dir: Path) -> None:
        for slot in SLOT_ORDER:
            with _slot_context(slot, "consistency check"):
                self.services[slot].check_pairs(self.store, self.paths(certs_dir, slot))

    def _materialize(
        self,
        certs_dir: Path,
        identities: dict[ServiceSlot, tuple[str, list[str]]],
    ) -> BootstrapResult:
        """Run the load-or-create cascade on every slot in order, stopping at the first failure."""
        self._ensure_certs_directory(certs_dir)

        result = BootstrapResult(certs_dir=certs_dir)
        for slot in SLOT_ORDER:
            service = SERVICE_CONFIGS[slot]
            common_name, hostnames = identities[slot]
            LOGGER.info("loading or creating service certificates", extra={"service": service.label})
            with _slot_context(slot, "load or create"):
                outcome = self.services[slot].load_or_create(
                    self.store,
                    self.provider,
                    self.paths(certs_dir, slot),
                    cert_lifetime=self.config.cert_lifetime,
                    ca_lifetime=self.config.ca_lifetime,
                    ca_common_name=self.config.ca_common_name,
                    common_name=common_name,
                    hostnames=hostnames,
                    dual_use=service.dual_use,
                )
            result.record(slot, outcome)
        return result

    def bootstrap(self, address_config: AddressConfig) -> BootstrapResult:
        """Create any missing CA and host certificates for a node's first start.

        Fails fast, writing nothing, if the inter-node host certificate is
        already present. Slots completed before a failure stay on disk; use
        load_or_create to resume.

        Raises:
            AlreadyInitializedError: If the node already has an inter-node certificate
            InconsistentPairError: If any cert or key on disk lacks its partner
        """
        certs_dir = address_config.certs_dir
        self._ensure_not_initialized(certs_dir)
        identities = self._resolve_identities(address_config)
        self._check_disk_pairs(certs_dir)
        return self._materialize(certs_dir, identities)

    def load_or_create(self, address_config: AddressConfig) -> BootstrapResult:
        """Run the bootstrap cascade without the first-boot guard.

        Loads everything already present and creates only what is missing, so
        it completes an interrupted bootstrap and writes nothing on a fully
        provisioned node.
        """
        certs_dir = address_config.certs_dir
        identities = self._resolve_identities(address_config)
        self._check_disk_pairs(certs_dir)
        return self._materialize(certs_dir, identities)

    def receive_bundle(
        self,
        supplied_cas: Mapping[ServiceSlot, ServiceCertificateBundle],
        address_config: AddressConfig,
    ) -> BootstrapResult:
        """Install CAs received from a cluster member, then issue this node's host certs.

        Only CA halves are used; slots with no supplied CA get a fresh one.

        Raises:
            AlreadyInitializedError: If the node already has an inter-node certificate
            AlreadyExistsError: If a CA file for a supplied CA already exists
            InconsistentPairError: If a supplied CA lacks its cert or key
        """
        certs_dir = address_config.certs_dir
        self._ensure_not_initialized(certs_dir)
        identities = self._resolve_identities(address_config)

        for slot, supplied in supplied_cas.items():
            if (supplied.ca_certificate is None) != (supplied.ca_key is None):
                raise InconsistentPairError(
                    "supplied CA certificate and key must be present together",
                    slot=slot.value,
                    operation="validate supplied CA",
                )
        self._check_disk_pairs(certs_dir)
        self._ensure_certs_directory(certs_dir)

        for slot in SLOT_ORDER:
            supplied = supplied_cas.get(slot)
            label = SERVICE_CONFIGS[slot].label
            if supplied is None or not supplied.has_ca:
                LOGGER.info("no CA supplied; one will be generated", extra={"service": label})
                continue
            service = self.services[slot]
            service.ca_certificate = supplied.ca_certificate
            service.ca_key = supplied.ca_key
            LOGGER.info("writing received CA", extra={"service": label})
            with _slot_context(slot, "write CA"):
                service.write_ca_only(self.store, self.paths(certs_dir, slot))

        return self._materialize(certs_dir, identities)

    def collect_local_bundle(self, certs_dir: Path) -> dict[ServiceSlot, ServiceCertificateBundle]:
        """Load every CA present on disk, for handing to a joining node.

        A slot whose CA certificate does not exist is left empty. Host
        certificates are never read and nothing is generated.

        Raises:
            InconsistentPairError: If a CA cert or key exists without its partner
            CredentialIOError: If a CA file exists but cannot be read
        """
        collected = {}
        for slot in SLOT_ORDER:
            ca_only = ServiceCertificateBundle()
            with _slot_context(slot, "load CA"):
                found = ca_only.load_ca_if_exists(self.store, self.paths(certs_dir, slot))
            if not found:
                LOGGER.warning("CA not found; skipping", extra={"service": SERVICE_CONFIGS[slot].label})
            self.services[slot].ca_certificate = ca_only.ca_certificate
            self.services[slot].ca_key = ca_only.ca_key
            collected[slot] = ca_only
        return collected

    def rotate(self, address_config: AddressConfig) -> RotationResult:
        """Re-issue the host certificate of every slot that has a CA.

        CAs are never replaced. Slots are rotated in order and the first
        failure stops the run; slots already rotated keep their new material,
        and rerunning rotates every slot again.

        Raises:
            CredentialNotFoundError: If a slot has a CA but no host cert/key to replace
        """
        certs_dir = address_config.certs_dir
        identities = self._resolve_identities(address_config)
        self.collect_local_bundle(certs_dir)

        result = RotationResult()
        for slot in SLOT_ORDER:
            service = SERVICE_CONFIGS[slot]
            bundle = self.services[slot]
            if not bundle.has_ca:
                LOGGER.info("no CA present; skipping rotation", extra={"service": service.label})
                result.skipped.append(slot)
                continue

            common_name, hostnames = identities[slot]
            LOGGER.info("rotating service certificate", extra={"service": service.label})
            with _slot_context(slot, "rotate"):
                bundle.rotate_host_cert(
                    self.store,
                    self.provider,
                    self.paths(certs_dir, slot),
                    lifetime=self.config.cert_lifetime,
                    common_name=common_name,
                    hostnames=hostnames,
                    dual_use=service.dual_use,
                )
            result.rotated.append(slot)
        return result


def encode_transfer_payload(cas: Mapping[ServiceSlot, ServiceCertificateBundle]) -> bytes:
    """Serialize CA halves to JSON keyed by slot name; slots without a CA are omitted."""
    entries = {}
    for slot in SLOT_ORDER:
        bundle = cas.get(slot)
        if bundle is None or not bundle.has_ca:
            continue
        entries[slot.value] = {
            "ca_certificate": bundle.ca_certificate.decode("ascii"),
            "ca_key": bundle.ca_key.decode("ascii"),
        }
    return json.dumps({"version": TRANSFER_PAYLOAD_VERSION, "cas": entries}, indent=2).encode()


def decode_transfer_payload(data: bytes) -> dict[ServiceSlot, ServiceCertificateBundle]:
    """Parse a payload from encode_transfer_payload.

    Raises:
        CertificateError: If the payload is not valid JSON, has the wrong version,
            or names an unknown slot
    """
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CertificateError(f"malformed CA bundle payload: {e}") from e

    if not isinstance(payload, dict) or payload.get("version") != TRANSFER_PAYLOAD_VERSION:
        raise CertificateError("unsupported CA bundle payload version")

    cas_entries = payload.get("cas", {})
    if not isinstance(cas_entries, dict):
        raise CertificateError("malformed CA bundle payload: 'cas' must be an object")

    cas = {}
    for name, entry in cas_entries.items():
        try:
            slot = ServiceSlot(name)
        except ValueError as e:
            raise CertificateError(f"unknown slot {name!r} in CA bundle payload") from e
        if not isinstance(entry, dict):
            raise CertificateError(f"malformed CA entry for slot {name!r}")
        cas[slot] = ServiceCertificateBundle(
            ca_certificate=_decode_pem_field(entry, "ca_certificate", name),
            ca_key=_decode_pem_field(entry, "ca_key", name),
        )
    return cas


def _decode_pem_field(entry: dict, field_name: str, slot_name: str) -> bytes | None:
    value = entry.get(field_name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise CertificateError(f"malformed {field_name} for slot {slot_name!r}: expected PEM text")
    try:
        return value.encode("ascii")
    except UnicodeEncodeError as e:
        raise CertificateError(f"malformed {field_name} for slot {slot_name!r}: {e}") from e
