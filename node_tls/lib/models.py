"""Result models for node certificate workflows."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .slots import ServiceSlot


class CascadeOutcome(Enum):
    """What the load-or-create cascade did for one slot."""

    LOADED = "loaded"
    ISSUED = "issued"
    CREATED_CA_AND_ISSUED = "created_ca_and_issued"


@dataclass
class BootstrapResult:
    """Result from bootstrap, resume, or bundle receive.

    Slot lists follow the fixed slot order.
    """

    certs_dir: Path
    created_cas: list[ServiceSlot] = field(default_factory=list)
    issued_certs: list[ServiceSlot] = field(default_factory=list)
    loaded_certs: list[ServiceSlot] = field(default_factory=list)

    def record(self, slot: ServiceSlot, outcome: CascadeOutcome) -> None:
        if outcome is CascadeOutcome.LOADED:
            self.loaded_certs.append(slot)
            return
        if outcome is CascadeOutcome.CREATED_CA_AND_ISSUED:
            self.created_cas.append(slot)
        self.issued_certs.append(slot)


@dataclass
class RotationResult:
    """Result from host certificate rotation."""

    rotated: list[ServiceSlot] = field(default_factory=list)
    skipped: list[ServiceSlot] = field(default_factory=list)
