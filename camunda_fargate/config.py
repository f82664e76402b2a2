"""
Configuration model for the Camunda Fargate constructs.

Callers describe a deployment with a partial ``PlatformOptions``; the option
resolver turns it into a fully populated ``PlatformConfiguration`` that every
downstream builder reads and never modifies.

Role specific settings are expressed by composition: a ``RoleOverrides``
value per ``RoleKind`` layered over the built-in role defaults, instead of a
separate properties type for each component.
"""

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_efs as efs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_servicediscovery as servicediscovery,
)

from .exceptions import TopologyError


CAMUNDA_VERSION = "latest"
ELASTIC_VERSION = "7.17.0"
DEFAULT_VPC_CIDR = "10.0.0.0/16"

SIMPLE_MONITOR_IMAGE = "ghcr.io/camunda-community-hub/zeebe-simple-monitor:2.4.0"
HAZELCAST_EXPORTER_IMAGE = (
    "ghcr.io/camunda-community-hub/zeebe-with-hazelcast-exporter:8.0.5"
)

# Zeebe ports
COMMAND_API_PORT = 26500
INTERNAL_API_PORT = 26501
CLUSTER_PORT = 26502
COORDINATION_PORT_RANGE = (26500, 26503)
MONITORING_PORT = 9600

# Supporting component ports
ELASTICSEARCH_HTTP_PORT = 9200
ELASTICSEARCH_TRANSPORT_PORT = 9300
WEB_APP_PORT = 8080
SIMPLE_MONITOR_PORT = 8082
HAZELCAST_PORT = 5701
NFS_PORT = 2049

ZEEBE_DATA_PATH = "/usr/local/zeebe/data"
ELASTICSEARCH_DATA_PATH = "/usr/share/elasticsearch/data"


class RoleKind(enum.Enum):
    """Logical deployment units; the value doubles as the base service name."""

    GATEWAY = "zeebe-gateway"
    BROKER = "zeebe-broker"
    INDEX_STORE = "elasticsearch"
    PROCESS_MONITOR_UI = "operate"
    TASK_LIST_UI = "tasklist"
    DEV_ALL_IN_ONE = "zeebe"
    SIMPLE_MONITOR = "simple-monitor"

    @property
    def uses_zeebe_image(self) -> bool:
        return self in (RoleKind.GATEWAY, RoleKind.BROKER, RoleKind.DEV_ALL_IN_ONE)


class SubnetPlacement(enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @property
    def subnet_type(self) -> ec2.SubnetType:
        if self is SubnetPlacement.PUBLIC:
            return ec2.SubnetType.PUBLIC
        return ec2.SubnetType.PRIVATE_WITH_EGRESS


class Transport(enum.Enum):
    TCP = "tcp"
    UDP = "udp"


class StorageKind(enum.Enum):
    EPHEMERAL = "ephemeral"
    BIND_MOUNT = "bind-mount"
    SHARED_VOLUME = "shared-volume"
    ISOLATED_PER_BROKER = "isolated-per-broker"


@dataclass(frozen=True)
class StorageMode:
    """
    How role data is persisted, decided once by the option resolver.

    ``file_system`` is only meaningful for the volume backed kinds; when it is
    ``None`` the storage provisioner creates the default EFS file system.
    """

    kind: StorageKind
    file_system: Optional[efs.IFileSystem] = None

    @classmethod
    def ephemeral(cls) -> "StorageMode":
        return cls(StorageKind.EPHEMERAL)

    @classmethod
    def bind_mount(cls) -> "StorageMode":
        return cls(StorageKind.BIND_MOUNT)

    @classmethod
    def shared_volume(cls, file_system: Optional[efs.IFileSystem] = None) -> "StorageMode":
        return cls(StorageKind.SHARED_VOLUME, file_system)

    @classmethod
    def isolated_per_broker(
        cls, file_system: Optional[efs.IFileSystem] = None
    ) -> "StorageMode":
        return cls(StorageKind.ISOLATED_PER_BROKER, file_system)

    @property
    def uses_volume(self) -> bool:
        return self.kind in (StorageKind.SHARED_VOLUME, StorageKind.ISOLATED_PER_BROKER)


@dataclass(frozen=True)
class ComputeShape:
    """CPU units and memory in MiB. ``cpu`` may be omitted at container level."""

    memory_mib: int
    cpu: Optional[int] = None


@dataclass(frozen=True)
class PortBinding:
    container_port: int
    host_port: Optional[int] = None
    transport: Transport = Transport.TCP

    @property
    def published_port(self) -> int:
        return self.host_port if self.host_port is not None else self.container_port


def tcp_ports(*ports: int) -> Tuple[PortBinding, ...]:
    return tuple(PortBinding(port, port) for port in ports)


@dataclass(frozen=True)
class RoleOverrides:
    """
    Caller supplied settings for one role. Unset fields fall back to the preset
    and role defaults. ``environment`` replaces the computed environment.
    """

    cpu: Optional[int] = None
    memory_mib: Optional[int] = None
    image: Optional[ecs.ContainerImage] = None
    port_bindings: Optional[Sequence[PortBinding]] = None
    environment: Optional[Mapping[str, str]] = None
    security_group: Optional[ec2.ISecurityGroup] = None
    placement: Optional[SubnetPlacement] = None

    def layered_over(self, base: Optional["RoleOverrides"]) -> "RoleOverrides":
        """Return a copy where every unset field is taken from ``base``."""
        if base is None:
            return self
        values = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            values[f.name] = value if value is not None else getattr(base, f.name)
        return RoleOverrides(**values)


@dataclass(frozen=True)
class RoleDefaults:
    shape: ComputeShape
    placement: SubnetPlacement
    port_bindings: Tuple[PortBinding, ...]


ZEEBE_PORTS = tcp_ports(COMMAND_API_PORT, INTERNAL_API_PORT, CLUSTER_PORT, MONITORING_PORT)

ROLE_DEFAULTS: Dict[RoleKind, RoleDefaults] = {
    RoleKind.GATEWAY: RoleDefaults(
        ComputeShape(memory_mib=1024, cpu=512), SubnetPlacement.PUBLIC, ZEEBE_PORTS
    ),
    RoleKind.BROKER: RoleDefaults(
        ComputeShape(memory_mib=1024, cpu=512), SubnetPlacement.PRIVATE, ZEEBE_PORTS
    ),
    RoleKind.INDEX_STORE: RoleDefaults(
        ComputeShape(memory_mib=1024, cpu=512),
        SubnetPlacement.PRIVATE,
        tcp_ports(ELASTICSEARCH_HTTP_PORT, ELASTICSEARCH_TRANSPORT_PORT),
    ),
    RoleKind.PROCESS_MONITOR_UI: RoleDefaults(
        ComputeShape(memory_mib=512, cpu=256), SubnetPlacement.PRIVATE, tcp_ports(WEB_APP_PORT)
    ),
    RoleKind.TASK_LIST_UI: RoleDefaults(
        ComputeShape(memory_mib=512, cpu=256), SubnetPlacement.PRIVATE, tcp_ports(WEB_APP_PORT)
    ),
    RoleKind.DEV_ALL_IN_ONE: RoleDefaults(
        ComputeShape(memory_mib=1024, cpu=512),
        SubnetPlacement.PUBLIC,
        tcp_ports(MONITORING_PORT, COMMAND_API_PORT, INTERNAL_API_PORT, CLUSTER_PORT),
    ),
    RoleKind.SIMPLE_MONITOR: RoleDefaults(
        ComputeShape(memory_mib=1024),
        SubnetPlacement.PUBLIC,
        tcp_ports(SIMPLE_MONITOR_PORT, HAZELCAST_PORT),
    ),
}


def default_image_name(
    kind: RoleKind,
    camunda_version: str = CAMUNDA_VERSION,
    elastic_version: str = ELASTIC_VERSION,
) -> str:
    if kind.uses_zeebe_image:
        return f"camunda/zeebe:{camunda_version}"
    if kind is RoleKind.INDEX_STORE:
        return f"docker.elastic.co/elasticsearch/elasticsearch:{elastic_version}"
    if kind is RoleKind.PROCESS_MONITOR_UI:
        return f"camunda/operate:{camunda_version}"
    if kind is RoleKind.TASK_LIST_UI:
        return f"camunda/tasklist:{camunda_version}"
    return SIMPLE_MONITOR_IMAGE


@dataclass(frozen=True)
class PlatformOptions:
    """
    Partial, caller supplied configuration. Every field is optional; anything
    left as ``None`` is defaulted by the option resolver.
    """

    vpc: Optional[ec2.IVpc] = None
    ecs_cluster: Optional[ecs.ICluster] = None
    namespace: Optional[servicediscovery.INamespace] = None
    file_system: Optional[efs.IFileSystem] = None
    use_efs_storage: Optional[bool] = None
    bind_mount_storage: Optional[bool] = None
    num_broker_nodes: Optional[int] = None
    num_gateway_nodes: Optional[int] = None
    container_image: Optional[ecs.ContainerImage] = None
    camunda_version: Optional[str] = None
    elastic_version: Optional[str] = None
    roles: Mapping[RoleKind, RoleOverrides] = field(default_factory=dict)
    security_groups: Optional[Sequence[ec2.ISecurityGroup]] = None
    public_gateway: Optional[bool] = None
    load_balancer: Optional[elbv2.ApplicationLoadBalancer] = None
    create_load_balancer: Optional[bool] = None
    route_ui_paths: Optional[bool] = None
    use_namespace: Optional[bool] = None
    simple_monitor: Optional[bool] = None
    hazelcast_exporter: Optional[bool] = None

    @classmethod
    def build(cls, options: Optional["PlatformOptions"] = None, **kwargs) -> "PlatformOptions":
        """Combine an options object with keyword overrides given to a preset."""
        unknown = set(kwargs) - {f.name for f in dataclasses.fields(cls)}
        if unknown:
            raise TopologyError(f"Unknown platform option(s): {', '.join(sorted(unknown))}")
        if options is None:
            return cls(**kwargs)
        return dataclasses.replace(options, **kwargs)

    def overrides_for(self, kind: RoleKind) -> RoleOverrides:
        return self.roles.get(kind, RoleOverrides())


@dataclass(frozen=True)
class RoleSettings:
    kind: RoleKind
    shape: ComputeShape
    image: ecs.ContainerImage
    security_groups: Tuple[ec2.ISecurityGroup, ...]
    placement: SubnetPlacement
    port_bindings: Tuple[PortBinding, ...]
    environment: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class PlatformConfiguration:
    """
    Fully resolved settings for one deployment.

    ``namespace`` is ``None`` only for presets that run without Cloud Map
    registration; ``load_balancer`` is ``None`` when no routing is wired.
    """

    vpc: ec2.IVpc
    ecs_cluster: ecs.ICluster
    namespace: Optional[servicediscovery.INamespace]
    roles: Mapping[RoleKind, RoleSettings]
    storage: StorageMode
    storage_security_group: Optional[ec2.ISecurityGroup]
    num_broker_nodes: int
    num_gateway_nodes: int
    load_balancer: Optional[elbv2.ApplicationLoadBalancer] = None
    route_ui_paths: bool = False
    simple_monitor: bool = False
    hazelcast_exporter: bool = False

    def role(self, kind: RoleKind) -> RoleSettings:
        try:
            return self.roles[kind]
        except KeyError:
            raise TopologyError(
                f"Role '{kind.value}' is not part of this deployment"
            ) from None

    def has_role(self, kind: RoleKind) -> bool:
        return kind in self.roles

    @property
    def namespace_name(self) -> Optional[str]:
        return self.namespace.namespace_name if self.namespace is not None else None
