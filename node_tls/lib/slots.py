"""Fixed service slots and their static certificate settings."""

from dataclasses import dataclass
from enum import Enum

from .config import AddressConfig, TLSConfig
from .errors import InvalidAddressError


class ServiceSlot(Enum):
    """Trust domains a node holds a CA and host certificate for."""

    INTER_NODE = "inter_node"
    USER_AUTH = "user_auth"
    SQL_SERVICE = "sql_service"
    RPC_SERVICE = "rpc_service"
    ADMIN_UI_SERVICE = "admin_ui_service"


class HostnamePolicy(Enum):
    """Which configured addresses become the certificate's SANs."""

    NONE = "none"
    RPC = "rpc"
    SQL = "sql"
    HTTP = "http"


class CommonNameSource(Enum):
    """Where the certificate's subject CN comes from."""

    NODE_USER = "node_user"
    FIRST_HTTP_HOST = "first_http_host"


@dataclass(frozen=True)
class ServiceConfig:
    """Static per-slot settings."""

    label: str
    hostname_policy: HostnamePolicy
    common_name_source: CommonNameSource
    dual_use: bool


# Bootstrap, receive and rotate all walk the slots in this order.
SLOT_ORDER: tuple[ServiceSlot, ...] = (
    ServiceSlot.INTER_NODE,
    ServiceSlot.USER_AUTH,
    ServiceSlot.SQL_SERVICE,
    ServiceSlot.RPC_SERVICE,
    ServiceSlot.ADMIN_UI_SERVICE,
)

SERVICE_CONFIGS: dict[ServiceSlot, ServiceConfig] = {
    ServiceSlot.INTER_NODE: ServiceConfig(
        label="cockroach-node",
        hostname_policy=HostnamePolicy.RPC,
        common_name_source=CommonNameSource.NODE_USER,
        dual_use=True,
    ),
    ServiceSlot.USER_AUTH: ServiceConfig(
        label="cockroach-client",
        hostname_policy=HostnamePolicy.NONE,
        common_name_source=CommonNameSource.NODE_USER,
        dual_use=True,
    ),
    ServiceSlot.SQL_SERVICE: ServiceConfig(
        label="cockroach-sql",
        hostname_policy=HostnamePolicy.SQL,
        common_name_source=CommonNameSource.NODE_USER,
        dual_use=False,
    ),
    ServiceSlot.RPC_SERVICE: ServiceConfig(
        label="cockroach-rpc",
        hostname_policy=HostnamePolicy.RPC,
        common_name_source=CommonNameSource.NODE_USER,
        dual_use=False,
    ),
    ServiceSlot.ADMIN_UI_SERVICE: ServiceConfig(
        label="cockroach-http",
        hostname_policy=HostnamePolicy.HTTP,
        common_name_source=CommonNameSource.FIRST_HTTP_HOST,
        dual_use=False,
    ),
}


def resolve_hostnames(policy: HostnamePolicy, address_config: AddressConfig) -> list[str]:
    """Derive SAN hostnames for a policy from the node's addresses."""
    if policy is HostnamePolicy.RPC:
        return address_config.rpc_hostnames()
    if policy is HostnamePolicy.SQL:
        return address_config.sql_hostnames()
    if policy is HostnamePolicy.HTTP:
        return address_config.http_hostnames()
    return []


def resolve_identity(
    slot: ServiceSlot, address_config: AddressConfig, tls_config: TLSConfig
) -> tuple[str, list[str]]:
    """Return (common_name, hostnames) for a slot's host certificate.

    Raises:
        InvalidAddressError: If an address is malformed, or the admin UI slot has no HTTP host
    """
    service = SERVICE_CONFIGS[slot]
    hostnames = resolve_hostnames(service.hostname_policy, address_config)

    if service.common_name_source is CommonNameSource.FIRST_HTTP_HOST:
        if not hostnames:
            raise InvalidAddressError("no HTTP address configured for the admin UI certificate")
        return hostnames[0], hostnames
    return tls_config.node_user, hostnames
