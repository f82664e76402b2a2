"""
Distributed Zeebe cluster: N brokers and G standalone gateways, one Fargate
service each, registered in a Cloud Map namespace.
"""

from typing import Sequence

from ..config import RoleKind, StorageKind
from ..resolver import PresetDefaults
from ..storage import StorageScope, plan_broker_scopes
from ..topology import TopologyBuilder
from .base import PlatformPreset


class ZeebeFargateCluster(PlatformPreset):
    """
    Zeebe brokers in private subnets behind gateways in public subnets.

    With more than one broker and EFS storage enabled (the default) every
    broker gets its own access point on a shared file system; a single
    broker mounts the file system root.
    """

    defaults = PresetDefaults(
        name="zeebe-cluster",
        cluster_name="zeebe-cluster",
        namespace_name="zeebe-cluster.net",
        roles=(RoleKind.GATEWAY, RoleKind.BROKER),
        storage_roles=(RoleKind.BROKER,),
        isolate_brokers=True,
    )
    file_system_name = "zeebe-efs"

    def storage_scopes(self) -> Sequence[StorageScope]:
        if self.config.storage.kind is StorageKind.ISOLATED_PER_BROKER:
            return plan_broker_scopes(self.config.num_broker_nodes)
        return []

    def _create_services(self) -> None:
        builder = TopologyBuilder(
            self.config,
            self.storage,
            self.discovery_addressing(),
        )

        for index in range(self.config.num_gateway_nodes):
            self._create_service(builder, RoleKind.GATEWAY, index)

        for index in range(self.config.num_broker_nodes):
            self._create_service(builder, RoleKind.BROKER, index)

    def _create_service(self, builder: TopologyBuilder, kind: RoleKind, index: int) -> None:
        role, service = builder.build(kind, index)
        self.services[service.service_name] = self.renderer.render(
            role.name, role.name, role.shape, [role], service
        )
