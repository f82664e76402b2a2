"""
Path based routing from an application load balancer to the web UIs.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
)
from constructs import Construct

from .config import WEB_APP_PORT, RoleKind
from .exceptions import TopologyError

logger = logging.getLogger(__name__)

HTTP_PORT = 80
DEREGISTRATION_DELAY = Duration.seconds(30)


@dataclass(frozen=True)
class UiRoute:
    target_group_name: str
    path_pattern: str
    priority: int
    slow_start_seconds: int


ROUTES: Dict[RoleKind, UiRoute] = {
    RoleKind.PROCESS_MONITOR_UI: UiRoute("core-operate-tg", "/operate*", 10, 90),
    RoleKind.TASK_LIST_UI: UiRoute("core-tasklist-tg", "/tasklist*", 20, 60),
}


class LoadBalancerAttachment:
    """Register UI services as path routed targets of ``load_balancer``."""

    def __init__(
        self,
        scope: Construct,
        vpc: ec2.IVpc,
        load_balancer: Optional[elbv2.ApplicationLoadBalancer],
    ) -> None:
        if load_balancer is None:
            raise TopologyError("UI routing needs a load balancer, none was supplied or created")
        self._scope = scope
        self._vpc = vpc
        self.load_balancer = load_balancer
        self._listener: Optional[elbv2.ApplicationListener] = None

    @property
    def listener(self) -> elbv2.ApplicationListener:
        """The first listener of the load balancer, or a new HTTP one answering 404."""
        if self._listener is None:
            if self.load_balancer.listeners:
                self._listener = self.load_balancer.listeners[0]
            else:
                logger.debug("Adding HTTP listener on port %d", HTTP_PORT)
                self._listener = self.load_balancer.add_listener(
                    "http-listener",
                    port=HTTP_PORT,
                    open=True,
                    default_action=elbv2.ListenerAction.fixed_response(404),
                )
        return self._listener

    def attach(
        self,
        kind: RoleKind,
        service: ecs.FargateService,
        port: int = WEB_APP_PORT,
        container_name: Optional[str] = None,
    ) -> elbv2.ApplicationTargetGroup:
        """
        Route the UI path of ``kind`` to ``service``.

        Services whose task holds several containers must name the UI
        container; otherwise the task's default container is registered.
        """
        route = ROUTES.get(kind)
        if route is None:
            raise TopologyError(f"Role '{kind.value}' has no load balancer route")

        target_group = elbv2.ApplicationTargetGroup(
            self._scope,
            f"{kind.value}-target-group",
            target_group_name=route.target_group_name,
            port=port,
            vpc=self._vpc,
            protocol=elbv2.ApplicationProtocol.HTTP,
            target_type=elbv2.TargetType.IP,
            health_check=elbv2.HealthCheck(
                path="/",
                protocol=elbv2.Protocol.HTTP,
                healthy_http_codes="200-399",
            ),
            slow_start=Duration.seconds(route.slow_start_seconds),
            deregistration_delay=DEREGISTRATION_DELAY,
        )
        self.listener.add_target_groups(
            f"alb-{kind.value}-target-group",
            target_groups=[target_group],
            conditions=[elbv2.ListenerCondition.path_patterns([route.path_pattern])],
            priority=route.priority,
        )
        if container_name is None:
            service.attach_to_application_target_group(target_group)
        else:
            target_group.add_target(
                service.load_balancer_target(container_name=container_name, container_port=port)
            )

        logger.debug("Routing %s to %s", route.path_pattern, kind.value)
        return target_group
