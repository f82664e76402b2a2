"""
Render role and service records as ECS Fargate constructs.
"""

import logging
from typing import Dict, Sequence

from aws_cdk import (
    RemovalPolicy,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_logs as logs,
    aws_servicediscovery as servicediscovery,
)
from constructs import Construct

from .config import ComputeShape, PlatformConfiguration, Transport
from .topology import RoleSpec, ServiceSpec, VolumeSpec

logger = logging.getLogger(__name__)

LOG_RETENTION = logs.RetentionDays.ONE_MONTH


class TaskRenderer:
    """
    Create task definitions, containers and Fargate services in ``scope``.

    Log groups are shared across every task rendered by the same renderer,
    keyed by log group name.
    """

    def __init__(self, scope: Construct, config: PlatformConfiguration) -> None:
        self._scope = scope
        self._config = config
        self._log_groups: Dict[str, logs.LogGroup] = {}

    def render(
        self,
        construct_id: str,
        family: str,
        task_shape: ComputeShape,
        roles: Sequence[RoleSpec],
        service: ServiceSpec,
    ) -> ecs.FargateService:
        """
        Render one task definition holding a container per role and the
        service running it.

        Args:
            construct_id: Base id of the task definition and service constructs
            family: Task definition family
            task_shape: Task level CPU and memory
            roles: Containers of the task, in order
            service: Service settings

        Returns:
            The Fargate service
        """
        task_definition = self._task_definition(construct_id, family, task_shape, roles)
        fargate_service = self._service(construct_id, task_definition, service)
        logger.debug(
            "Rendered service %s (%d container(s), family %s)",
            service.service_name,
            len(roles),
            family,
        )
        return fargate_service

    def _task_definition(
        self,
        construct_id: str,
        family: str,
        task_shape: ComputeShape,
        roles: Sequence[RoleSpec],
    ) -> ecs.FargateTaskDefinition:
        task_definition = ecs.FargateTaskDefinition(
            self._scope,
            f"{construct_id}-task-def",
            cpu=task_shape.cpu,
            memory_limit_mib=task_shape.memory_mib,
            family=family,
        )
        task_definition.apply_removal_policy(RemovalPolicy.DESTROY)

        volumes = set()
        for role in roles:
            container = task_definition.add_container(
                role.name,
                container_name=role.container_name,
                image=role.image,
                cpu=role.shape.cpu,
                memory_limit_mib=role.shape.memory_mib,
                port_mappings=[
                    ecs.PortMapping(
                        container_port=binding.container_port,
                        host_port=binding.published_port,
                        protocol=ecs.Protocol.UDP
                        if binding.transport is Transport.UDP
                        else ecs.Protocol.TCP,
                    )
                    for binding in role.port_bindings
                ],
                environment=dict(role.environment),
                logging=ecs.LogDrivers.aws_logs(
                    log_group=self._log_group(role.log_group_name),
                    stream_prefix=role.log_stream_prefix,
                ),
            )

            mount = role.volume_mount
            if mount is None:
                continue
            if mount.volume.name not in volumes:
                self._add_volume(task_definition, mount.volume)
                volumes.add(mount.volume.name)
            container.add_mount_points(
                ecs.MountPoint(
                    container_path=mount.container_path,
                    source_volume=mount.volume.name,
                    read_only=False,
                )
            )

        return task_definition

    @staticmethod
    def _add_volume(task_definition: ecs.FargateTaskDefinition, volume: VolumeSpec) -> None:
        if volume.file_system is None:
            task_definition.add_volume(name=volume.name)
            return

        if volume.access_point is not None:
            configuration = ecs.EfsVolumeConfiguration(
                file_system_id=volume.file_system.file_system_id,
                transit_encryption="ENABLED",
                authorization_config=ecs.AuthorizationConfig(
                    access_point_id=volume.access_point.access_point_id,
                ),
            )
        else:
            configuration = ecs.EfsVolumeConfiguration(
                file_system_id=volume.file_system.file_system_id,
                root_directory=volume.root_directory,
            )
        task_definition.add_volume(name=volume.name, efs_volume_configuration=configuration)

    def _log_group(self, name: str) -> logs.LogGroup:
        if name not in self._log_groups:
            construct_id = name.strip("/").replace("/", "-")
            self._log_groups[name] = logs.LogGroup(
                self._scope,
                f"{construct_id}-logs",
                log_group_name=name,
                removal_policy=RemovalPolicy.DESTROY,
                retention=LOG_RETENTION,
            )
        return self._log_groups[name]

    def _service(
        self,
        construct_id: str,
        task_definition: ecs.FargateTaskDefinition,
        service: ServiceSpec,
    ) -> ecs.FargateService:
        cloud_map_options = None
        if service.discovery_name is not None and self._config.namespace is not None:
            cloud_map_options = ecs.CloudMapOptions(
                name=service.discovery_name,
                dns_record_type=servicediscovery.DnsRecordType.A,
                cloud_map_namespace=self._config.namespace,
            )

        return ecs.FargateService(
            self._scope,
            f"{construct_id}-service",
            cluster=self._config.ecs_cluster,
            task_definition=task_definition,
            service_name=service.service_name,
            desired_count=service.desired_count,
            min_healthy_percent=service.min_healthy_percent,
            max_healthy_percent=service.max_healthy_percent,
            security_groups=list(service.security_groups),
            vpc_subnets=ec2.SubnetSelection(subnet_type=service.placement.subnet_type),
            assign_public_ip=service.assign_public_ip,
            deployment_controller=ecs.DeploymentController(
                type=ecs.DeploymentControllerType.ECS
            ),
            cloud_map_options=cloud_map_options,
        )
