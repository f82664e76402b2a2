"""
Task and service topology.

The builder turns a resolved ``PlatformConfiguration`` into plain
``RoleSpec`` / ``ServiceSpec`` records: container settings, computed
environment, storage mount and service placement for each role instance.
Nothing here touches CDK constructs beyond carrying handles through; the
renderer realises the records.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from aws_cdk import aws_ec2 as ec2, aws_ecs as ecs, aws_efs as efs

from .config import (
    CLUSTER_PORT,
    COMMAND_API_PORT,
    ELASTICSEARCH_DATA_PATH,
    ELASTICSEARCH_HTTP_PORT,
    HAZELCAST_PORT,
    WEB_APP_PORT,
    ZEEBE_DATA_PATH,
    ComputeShape,
    PlatformConfiguration,
    PortBinding,
    RoleKind,
    StorageKind,
    SubnetPlacement,
)
from .contact_points import LoopbackAddressing, ServiceDiscoveryAddressing, instance_name
from .exceptions import TopologyError
from .storage import BROKER_DATA_SCOPE, INDEX_STORE_SCOPE, ProvisionedStorage

logger = logging.getLogger(__name__)

Addressing = Union[ServiceDiscoveryAddressing, LoopbackAddressing]

JVM_HEAP = "-Xms512m -Xmx512m"
COMMAND_WATERMARK = "0.998"
REPLICATION_WATERMARK = "0.999"
ELASTICSEARCH_EXPORTER = "io.camunda.zeebe.exporter.ElasticsearchExporter"

_DATA_PATHS = {
    RoleKind.BROKER: ZEEBE_DATA_PATH,
    RoleKind.DEV_ALL_IN_ONE: ZEEBE_DATA_PATH,
    RoleKind.INDEX_STORE: ELASTICSEARCH_DATA_PATH,
}

_NAMED_SCOPES = {
    RoleKind.BROKER: BROKER_DATA_SCOPE,
    RoleKind.DEV_ALL_IN_ONE: BROKER_DATA_SCOPE,
    RoleKind.INDEX_STORE: INDEX_STORE_SCOPE,
}

_UI_SETTINGS = {
    RoleKind.PROCESS_MONITOR_UI: ("/operate", "CAMUNDA_OPERATE"),
    RoleKind.TASK_LIST_UI: ("/tasklist", "CAMUNDA_TASKLIST"),
}


@dataclass(frozen=True)
class VolumeSpec:
    """An EFS volume, or a task local bind mount when ``file_system`` is ``None``."""

    name: str
    file_system: Optional[efs.IFileSystem] = None
    access_point: Optional[efs.IAccessPoint] = None
    root_directory: Optional[str] = None


@dataclass(frozen=True)
class VolumeMount:
    volume: VolumeSpec
    container_path: str


@dataclass(frozen=True)
class RoleSpec:
    kind: RoleKind
    index: Optional[int]
    name: str
    container_name: str
    shape: ComputeShape
    image: ecs.ContainerImage
    port_bindings: Tuple[PortBinding, ...]
    environment: Mapping[str, str]
    volume_mount: Optional[VolumeMount]
    log_group_name: str
    log_stream_prefix: str


@dataclass(frozen=True)
class ServiceSpec:
    service_name: str
    placement: SubnetPlacement
    assign_public_ip: bool
    security_groups: Tuple[ec2.ISecurityGroup, ...]
    discovery_name: Optional[str]
    desired_count: int = 1
    min_healthy_percent: int = 0
    max_healthy_percent: int = 100


class TopologyBuilder:
    """
    Build role and service records for one deployment.

    Args:
        config: Resolved platform configuration
        storage: Provisioned storage, ``None`` when no volume is used
        addressing: How roles reach each other (Cloud Map or loopback)
        log_group_prefix: Prefix of every log group name
        shared_log_group: Single log group used by every role; bundled
            tasks set this and keep container CPU unset
        role_names: Base names replacing the role kind value
    """

    def __init__(
        self,
        config: PlatformConfiguration,
        storage: Optional[ProvisionedStorage],
        addressing: Addressing,
        log_group_prefix: str = "/ecs",
        shared_log_group: Optional[str] = None,
        role_names: Optional[Mapping[RoleKind, str]] = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self.addressing = addressing
        self.log_group_prefix = log_group_prefix
        self.shared_log_group = shared_log_group
        self.role_names = dict(role_names or {})

    @property
    def bundled(self) -> bool:
        return self.shared_log_group is not None

    def role_name(self, kind: RoleKind, index: Optional[int] = None) -> str:
        base = self.role_names.get(kind, kind.value)
        return base if index is None else instance_name(base, index)

    def build(self, role: RoleKind, index: Optional[int] = None) -> Tuple[RoleSpec, ServiceSpec]:
        """Return the container and service records of one role instance."""
        spec = self.build_role(role, index)
        settings = self.config.role(role)
        service = self._service_spec(spec.name, settings.placement, settings.security_groups)
        if role in (RoleKind.GATEWAY, RoleKind.BROKER):
            service = replace(service, min_healthy_percent=100, max_healthy_percent=200)
        return spec, service

    def build_bundled(
        self, service_name: str, roles: Sequence[RoleKind], primary: RoleKind
    ) -> Tuple[List[RoleSpec], ServiceSpec]:
        """
        Return the records of a single task hosting every role in ``roles``.

        The service takes its placement from ``primary`` and the union of the
        roles' security groups.
        """
        specs = [self.build_role(kind) for kind in roles]
        groups: Dict[str, ec2.ISecurityGroup] = {}
        for kind in roles:
            for group in self.config.role(kind).security_groups:
                groups.setdefault(group.node.path, group)
        service = self._service_spec(
            service_name, self.config.role(primary).placement, tuple(groups.values())
        )
        return specs, service

    def build_role(self, role: RoleKind, index: Optional[int] = None) -> RoleSpec:
        settings = self.config.role(role)
        if role in (RoleKind.GATEWAY, RoleKind.BROKER) and index is None:
            raise TopologyError(f"Role '{role.value}' needs an instance index")

        name = self.role_name(role, index)
        if settings.environment is not None:
            environment = dict(settings.environment)
        else:
            environment = self._environment(role, name, index, settings.port_bindings)

        shape = settings.shape
        if self.bundled:
            shape = ComputeShape(memory_mib=shape.memory_mib)

        if self.bundled:
            log_group_name = self.shared_log_group
        else:
            log_group_name = f"{self.log_group_prefix}/{name}"

        logger.debug("Role %s: %d environment variable(s)", name, len(environment))
        return RoleSpec(
            kind=role,
            index=index,
            name=name,
            container_name=role.value if index is not None else name,
            shape=shape,
            image=settings.image,
            port_bindings=tuple(settings.port_bindings),
            environment=environment,
            volume_mount=self._volume_mount(role, name, index),
            log_group_name=log_group_name,
            log_stream_prefix=role.value if self.bundled else name,
        )

    def _service_spec(
        self,
        name: str,
        placement: SubnetPlacement,
        security_groups: Tuple[ec2.ISecurityGroup, ...],
    ) -> ServiceSpec:
        return ServiceSpec(
            service_name=name,
            placement=placement,
            assign_public_ip=placement is SubnetPlacement.PUBLIC,
            security_groups=security_groups,
            discovery_name=name if self.config.namespace is not None else None,
        )

    def _zeebe_endpoint(self) -> str:
        if self.config.has_role(RoleKind.DEV_ALL_IN_ONE):
            name = self.role_name(RoleKind.DEV_ALL_IN_ONE)
        else:
            name = self.role_name(RoleKind.GATEWAY, 0)
        return self.addressing.endpoint(name, COMMAND_API_PORT)

    def _elasticsearch_url(self) -> str:
        return self.addressing.endpoint(
            self.role_name(RoleKind.INDEX_STORE), ELASTICSEARCH_HTTP_PORT, "http"
        )

    def _environment(
        self,
        role: RoleKind,
        name: str,
        index: Optional[int],
        port_bindings: Sequence[PortBinding],
    ) -> Dict[str, str]:
        if role is RoleKind.GATEWAY:
            return {
                "JAVA_TOOL_OPTIONS": JVM_HEAP,
                "ZEEBE_STANDALONE_GATEWAY": "true",
                "ZEEBE_BROKER_GATEWAY_ENABLE": "true",
                # every gateway joins through broker 0 only
                "ZEEBE_GATEWAY_CLUSTER_CONTACTPOINT": self.addressing.contact_points(CLUSTER_PORT, 1),
                "ZEEBE_GATEWAY_CLUSTER_MEMBERID": name,
                "ZEEBE_GATEWAY_CLUSTER_HOST": self.addressing.host(name),
                "ATOMIX_LOG_LEVEL": "TRACE",
            }

        if role is RoleKind.BROKER:
            cluster_size = str(self.config.num_broker_nodes)
            return {
                "JAVA_TOOL_OPTIONS": JVM_HEAP,
                "ZEEBE_BROKER_CLUSTER_NODEID": str(index),
                "ZEEBE_BROKER_DATA_DISKUSAGECOMMANDWATERMARK": COMMAND_WATERMARK,
                "ZEEBE_BROKER_DATA_DISKUSAGEREPLICATIONWATERMARK": REPLICATION_WATERMARK,
                "ZEEBE_BROKER_CLUSTER_PARTITIONSCOUNT": cluster_size,
                "ZEEBE_BROKER_CLUSTER_REPLICATIONFACTOR": cluster_size,
                "ZEEBE_BROKER_CLUSTER_CLUSTERSIZE": cluster_size,
                "ZEEBE_BROKER_CLUSTER_INITIALCONTACTPOINTS": self.addressing.contact_points(
                    CLUSTER_PORT, self.config.num_broker_nodes
                ),
                "ZEEBE_BROKER_GATEWAY_ENABLE": "false",
                "ZEEBE_LOG_LEVEL": "DEBUG",
                "ZEEBE_DEBUG": "true",
                "ATOMIX_LOG_LEVEL": "TRACE",
            }

        if role is RoleKind.DEV_ALL_IN_ONE:
            environment = {
                "JAVA_TOOL_OPTIONS": JVM_HEAP,
                "ATOMIX_LOG_LEVEL": "DEBUG",
                "ZEEBE_BROKER_DATA_DISKUSAGECOMMANDWATERMARK": COMMAND_WATERMARK,
                "ZEEBE_BROKER_DATA_DISKUSAGEREPLICATIONWATERMARK": REPLICATION_WATERMARK,
            }
            if self.config.has_role(RoleKind.INDEX_STORE):
                environment.update(
                    {
                        "ZEEBE_BROKER_EXPORTERS_ELASTICSEARCH_CLASSNAME": ELASTICSEARCH_EXPORTER,
                        "ZEEBE_BROKER_EXPORTERS_ELASTICSEARCH_ARGS_URL": self._elasticsearch_url(),
                        "ZEEBE_BROKER_EXPORTERS_ELASTICSEARCH_ARGS_BULK_SIZE": "1",
                    }
                )
            return environment

        if role is RoleKind.INDEX_STORE:
            return {
                "bootstrap.memory_lock": "true",
                "discovery.type": "single-node",
                "xpack.security.enabled": "false",
                "cluster.routing.allocation.disk.threshold_enabled": "false",
            }

        if role in _UI_SETTINGS:
            context_path, prefix = _UI_SETTINGS[role]
            elasticsearch_url = self._elasticsearch_url()
            environment = {
                "SERVER_SERVLET_CONTEXT_PATH": context_path,
                f"{prefix}_ZEEBE_GATEWAYADDRESS": self._zeebe_endpoint(),
                f"{prefix}_ELASTICSEARCH_URL": elasticsearch_url,
                f"{prefix}_ZEEBEELASTICSEARCH_URL": elasticsearch_url,
            }
            if port_bindings and port_bindings[0].container_port != WEB_APP_PORT:
                environment["SERVER_PORT"] = str(port_bindings[0].container_port)
            return environment

        # simple monitor sidecar, always in the Zeebe task
        return {
            "JAVA_TOOL_OPTIONS": " ".join(
                [
                    JVM_HEAP,
                    f"-Dzeebe.client.broker.gateway-address={self._zeebe_endpoint()}",
                    "-Dzeebe.client.worker.hazelcast.connection="
                    + self.addressing.endpoint(self.role_name(RoleKind.DEV_ALL_IN_ONE), HAZELCAST_PORT),
                    "-Dsecurity.plaintext=true",
                ]
            ),
        }

    def _volume_mount(self, role: RoleKind, name: str, index: Optional[int]) -> Optional[VolumeMount]:
        container_path = _DATA_PATHS.get(role)
        kind = self.config.storage.kind
        if container_path is None or kind is StorageKind.EPHEMERAL:
            return None

        volume_name = f"{name}-data-volume"
        if kind is StorageKind.BIND_MOUNT:
            return VolumeMount(VolumeSpec(name=volume_name), container_path)

        if self.storage is None:
            raise TopologyError(f"Storage mode '{kind.value}' needs provisioned storage")

        if kind is StorageKind.ISOLATED_PER_BROKER and role is RoleKind.BROKER:
            access_point = self.storage.broker_access_point(index)
        else:
            access_point = self.storage.access_point(_NAMED_SCOPES[role])

        volume = VolumeSpec(
            name=volume_name,
            file_system=self.storage.file_system,
            access_point=access_point,
            root_directory=None if access_point is not None else "/",
        )
        return VolumeMount(volume, container_path)
