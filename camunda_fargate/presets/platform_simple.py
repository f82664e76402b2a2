"""
Camunda 8 platform in a single Fargate task.

All four components share one task and therefore one network namespace, so
they address each other through ``localhost`` instead of Cloud Map. This is
cheaper and simpler to wire, at the price of restarting every component
whenever one container fails or is updated.
"""

from typing import Sequence

from ..config import ComputeShape, RoleKind, RoleOverrides, SubnetPlacement, tcp_ports
from ..contact_points import LoopbackAddressing
from ..load_balancer import LoadBalancerAttachment
from ..resolver import UI_ROLES, PresetDefaults
from ..storage import BROKER_DATA_SCOPE, INDEX_STORE_SCOPE, StorageScope, plan_named_scopes
from ..topology import TopologyBuilder
from .base import PlatformPreset

TASK_SHAPE = ComputeShape(memory_mib=3072, cpu=1024)
SERVICE_NAME = "camunda-core-service"
TASK_FAMILY = "simple-camunda-platform"
OPERATE_PORT = 8000


class CamundaPlatformSimple(PlatformPreset):
    defaults = PresetDefaults(
        name="camunda-simple",
        cluster_name="camunda-cluster",
        namespace_name="camunda-cluster.net",
        roles=(
            RoleKind.INDEX_STORE,
            RoleKind.DEV_ALL_IN_ONE,
            RoleKind.TASK_LIST_UI,
            RoleKind.PROCESS_MONITOR_UI,
        ),
        storage_roles=(RoleKind.INDEX_STORE, RoleKind.DEV_ALL_IN_ONE),
        service_discovery=False,
        precise_security=False,
        role_overrides={
            RoleKind.INDEX_STORE: RoleOverrides(memory_mib=1200),
            RoleKind.DEV_ALL_IN_ONE: RoleOverrides(
                memory_mib=650, placement=SubnetPlacement.PRIVATE
            ),
            RoleKind.TASK_LIST_UI: RoleOverrides(memory_mib=600),
            # Tasklist already listens on 8080 inside the shared network namespace
            RoleKind.PROCESS_MONITOR_UI: RoleOverrides(
                memory_mib=600, port_bindings=tcp_ports(OPERATE_PORT)
            ),
        },
    )
    file_system_name = "camunda-core-efs"

    def storage_scopes(self) -> Sequence[StorageScope]:
        return plan_named_scopes(BROKER_DATA_SCOPE, INDEX_STORE_SCOPE)

    def _create_services(self) -> None:
        builder = TopologyBuilder(
            self.config,
            self.storage,
            LoopbackAddressing(),
            shared_log_group=f"/ecs/core/{TASK_FAMILY}",
        )
        roles, service = builder.build_bundled(
            SERVICE_NAME, list(self.config.roles), RoleKind.DEV_ALL_IN_ONE
        )
        fargate_service = self.renderer.render(
            "camunda-platform-simple", TASK_FAMILY, TASK_SHAPE, roles, service
        )
        self.services[SERVICE_NAME] = fargate_service

        load_balancer = self.config.load_balancer
        if not self.config.route_ui_paths or load_balancer is None:
            return

        attachment = LoadBalancerAttachment(self, self.config.vpc, load_balancer)
        for role in roles:
            if role.kind in UI_ROLES:
                attachment.attach(
                    role.kind,
                    fargate_service,
                    role.port_bindings[0].container_port,
                    container_name=role.container_name,
                )
