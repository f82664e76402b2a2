"""
Camunda 8 platform as four Fargate services (Zeebe, Elasticsearch, Operate
and Tasklist) with an application load balancer routing to the web UIs.
"""

from typing import Sequence

from aws_cdk import CfnOutput

from ..config import RoleKind
from ..load_balancer import LoadBalancerAttachment
from ..resolver import UI_ROLES, PresetDefaults
from ..storage import BROKER_DATA_SCOPE, INDEX_STORE_SCOPE, StorageScope, plan_named_scopes
from ..topology import TopologyBuilder
from .base import PlatformPreset


class CamundaPlatformFargate(PlatformPreset):
    """
    Distributed Camunda 8 platform.

    Services find each other through Cloud Map. Zeebe and Elasticsearch keep
    their data on separate access points of one EFS file system. Operate
    and Tasklist are reachable through the load balancer under ``/operate``
    and ``/tasklist``.
    """

    defaults = PresetDefaults(
        name="camunda-platform",
        cluster_name="camunda-cluster",
        namespace_name="camunda-cluster.net",
        roles=(
            RoleKind.INDEX_STORE,
            RoleKind.DEV_ALL_IN_ONE,
            RoleKind.PROCESS_MONITOR_UI,
            RoleKind.TASK_LIST_UI,
        ),
        storage_roles=(RoleKind.DEV_ALL_IN_ONE, RoleKind.INDEX_STORE),
        create_load_balancer=True,
        route_ui_paths=True,
    )
    file_system_name = "camunda-core-efs"

    def storage_scopes(self) -> Sequence[StorageScope]:
        return plan_named_scopes(BROKER_DATA_SCOPE, INDEX_STORE_SCOPE)

    def _create_services(self) -> None:
        builder = TopologyBuilder(
            self.config,
            self.storage,
            self.discovery_addressing(),
            log_group_prefix="/ecs/core",
        )

        for kind in self.config.roles:
            role, service = builder.build(kind)
            self.services[service.service_name] = self.renderer.render(
                role.name, f"core-{role.name}", role.shape, [role], service
            )

        load_balancer = self.config.load_balancer
        if not self.config.route_ui_paths or load_balancer is None:
            return

        attachment = LoadBalancerAttachment(self, self.config.vpc, load_balancer)
        for kind in UI_ROLES:
            if not self.config.has_role(kind):
                continue
            settings = self.config.role(kind)
            attachment.attach(
                kind,
                self.services[builder.role_name(kind)],
                settings.port_bindings[0].container_port,
            )

        CfnOutput(
            self,
            "albDNS",
            value=load_balancer.load_balancer_dns_name,
            description="DNS name of the load balancer serving Operate and Tasklist",
        )
