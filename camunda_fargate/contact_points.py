"""
Addressing helpers shared by every role that needs to find another role.

``create_contact_points`` is the only place broker contact point strings are
built; gateways and brokers both go through it so they agree on the format.
"""

from typing import Optional

from .config import CLUSTER_PORT, RoleKind

BROKER_PREFIX = RoleKind.BROKER.value
CONTACT_POINT_DELIMITER = ","
LOOPBACK_HOST = "localhost"


def instance_name(prefix: str, index: int) -> str:
    return f"{prefix}-{index}"


def broker_address(index: int, namespace: str, port: int = CLUSTER_PORT) -> str:
    """Return ``zeebe-broker-<index>.<namespace>:<port>``."""
    return f"{instance_name(BROKER_PREFIX, index)}.{namespace}:{port}"


def create_contact_points(port: int, namespace: str, count: int) -> str:
    """
    Render the initial contact point list for a broker cluster.

    Args:
        port: Cluster port every broker listens on
        namespace: Cloud Map namespace the brokers are registered in
        count: Number of brokers; ``0`` yields an empty string

    Returns:
        Comma separated ``zeebe-broker-<i>.<namespace>:<port>`` entries for
        ``i`` in ascending order, without a trailing delimiter
    """
    return CONTACT_POINT_DELIMITER.join(
        broker_address(index, namespace, port) for index in range(count)
    )


class ServiceDiscoveryAddressing:
    """Resolve roles through their Cloud Map A records."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def host(self, service_name: str) -> str:
        return f"{service_name}.{self.namespace}"

    def endpoint(self, service_name: str, port: int, scheme: Optional[str] = None) -> str:
        address = f"{self.host(service_name)}:{port}"
        return f"{scheme}://{address}" if scheme else address

    def contact_points(self, port: int, count: int) -> str:
        return create_contact_points(port, self.namespace, count)


class LoopbackAddressing:
    """
    Resolve roles that share one task (and therefore one network namespace)
    through the loopback interface.
    """

    namespace = None

    def host(self, service_name: str) -> str:
        return LOOPBACK_HOST

    def endpoint(self, service_name: str, port: int, scheme: Optional[str] = None) -> str:
        address = f"{LOOPBACK_HOST}:{port}"
        return f"{scheme}://{address}" if scheme else address

    def contact_points(self, port: int, count: int) -> str:
        return f"{LOOPBACK_HOST}:{port}" if count else ""
