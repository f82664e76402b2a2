"""
Option resolution: partial ``PlatformOptions`` in, complete
``PlatformConfiguration`` out.

Default infrastructure (VPC, ECS cluster, Cloud Map namespace, security
groups, load balancer) is created only for the handles the caller did not
supply.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_servicediscovery as servicediscovery,
)
from constructs import Construct

from .config import (
    CAMUNDA_VERSION,
    DEFAULT_VPC_CIDR,
    ELASTIC_VERSION,
    HAZELCAST_EXPORTER_IMAGE,
    ROLE_DEFAULTS,
    ComputeShape,
    PlatformConfiguration,
    PlatformOptions,
    RoleKind,
    RoleOverrides,
    RoleSettings,
    StorageMode,
    SubnetPlacement,
    default_image_name,
)
from .exceptions import TopologyError
from .security import STORAGE_LAYER, SecurityPolicyBuilder, SecurityRule, merge_rules, policy_rules

logger = logging.getLogger(__name__)

UI_ROLES = (RoleKind.PROCESS_MONITOR_UI, RoleKind.TASK_LIST_UI)
_PUBLIC_ENTRY_ROLES = (RoleKind.GATEWAY, RoleKind.DEV_ALL_IN_ONE)


@dataclass(frozen=True)
class PresetDefaults:
    """
    Per-preset defaults consulted by the resolver.

    ``roles`` lists every role the preset can deploy; gateways are dropped
    when the gateway count is zero and the Simple Monitor only appears when
    requested.
    """

    name: str
    cluster_name: str
    namespace_name: str
    roles: Tuple[RoleKind, ...]
    storage_roles: Tuple[RoleKind, ...] = ()
    service_discovery: bool = True
    num_broker_nodes: int = 3
    num_gateway_nodes: int = 1
    use_efs_storage: bool = True
    isolate_brokers: bool = False
    precise_security: bool = True
    shared_security_group: bool = False
    create_load_balancer: bool = False
    route_ui_paths: bool = False
    role_overrides: Mapping[RoleKind, RoleOverrides] = field(default_factory=dict)


class OptionResolver:
    """Fill every gap of a ``PlatformOptions`` value inside ``scope``."""

    def __init__(self, scope: Construct) -> None:
        self._scope = scope

    def resolve(self, options: PlatformOptions, defaults: PresetDefaults) -> PlatformConfiguration:
        num_brokers = _pick(options.num_broker_nodes, defaults.num_broker_nodes)
        num_gateways = _pick(options.num_gateway_nodes, defaults.num_gateway_nodes)
        if num_brokers < 1:
            raise TopologyError(f"num_broker_nodes must be at least 1, got {num_brokers}")
        if num_gateways < 0:
            raise TopologyError(f"num_gateway_nodes must not be negative, got {num_gateways}")

        simple_monitor = bool(options.simple_monitor)
        roles = self._active_roles(defaults, num_gateways, simple_monitor)

        vpc = self._resolve_vpc(options, defaults)
        ecs_cluster = options.ecs_cluster or self._create_cluster(vpc, defaults)
        namespace = self._resolve_namespace(options, defaults, vpc)
        storage = self._resolve_storage(options, defaults, num_brokers)

        role_groups, storage_group = self._resolve_security(
            options, defaults, roles, vpc, storage
        )
        role_settings = {
            kind: self._resolve_role(kind, options, defaults, role_groups[kind])
            for kind in roles
        }

        route_ui_paths = _pick(
            options.route_ui_paths,
            defaults.route_ui_paths or options.load_balancer is not None,
        )
        load_balancer = options.load_balancer
        if route_ui_paths and any(kind in roles for kind in UI_ROLES) and load_balancer is None:
            if not _pick(options.create_load_balancer, defaults.create_load_balancer):
                raise TopologyError(
                    "route_ui_paths requires a load balancer: pass load_balancer "
                    "or set create_load_balancer=True"
                )
            load_balancer = self._create_load_balancer(vpc)

        logger.debug(
            "%s: resolved %d role(s), %d broker(s), %d gateway(s), storage=%s",
            defaults.name,
            len(role_settings),
            num_brokers,
            num_gateways,
            storage.kind.value,
        )
        return PlatformConfiguration(
            vpc=vpc,
            ecs_cluster=ecs_cluster,
            namespace=namespace,
            roles=role_settings,
            storage=storage,
            storage_security_group=storage_group,
            num_broker_nodes=num_brokers,
            num_gateway_nodes=num_gateways,
            load_balancer=load_balancer,
            route_ui_paths=route_ui_paths,
            simple_monitor=simple_monitor,
            hazelcast_exporter=bool(options.hazelcast_exporter),
        )

    @staticmethod
    def _active_roles(
        defaults: PresetDefaults, num_gateways: int, simple_monitor: bool
    ) -> Tuple[RoleKind, ...]:
        roles = []
        for kind in defaults.roles:
            if kind is RoleKind.GATEWAY and num_gateways == 0:
                continue
            if kind is RoleKind.SIMPLE_MONITOR and not simple_monitor:
                continue
            roles.append(kind)
        return tuple(roles)

    def _resolve_vpc(self, options: PlatformOptions, defaults: PresetDefaults) -> ec2.IVpc:
        if options.vpc is not None:
            return options.vpc
        if options.ecs_cluster is not None:
            return options.ecs_cluster.vpc
        logger.debug("%s: creating default VPC %s", defaults.name, DEFAULT_VPC_CIDR)
        return ec2.Vpc(
            self._scope,
            "vpc",
            vpc_name=f"{defaults.name}-vpc",
            ip_addresses=ec2.IpAddresses.cidr(DEFAULT_VPC_CIDR),
            nat_gateways=1,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24,
                ),
            ],
        )

    def _create_cluster(self, vpc: ec2.IVpc, defaults: PresetDefaults) -> ecs.Cluster:
        logger.debug("%s: creating ECS cluster %s", defaults.name, defaults.cluster_name)
        return ecs.Cluster(
            self._scope,
            "ecs-cluster",
            cluster_name=defaults.cluster_name,
            vpc=vpc,
        )

    def _resolve_namespace(
        self, options: PlatformOptions, defaults: PresetDefaults, vpc: ec2.IVpc
    ) -> Optional[servicediscovery.INamespace]:
        use_namespace = _pick(
            options.use_namespace,
            options.namespace is not None or defaults.service_discovery,
        )
        if not use_namespace:
            return None
        if options.namespace is not None:
            return options.namespace
        logger.debug("%s: creating namespace %s", defaults.name, defaults.namespace_name)
        return servicediscovery.PrivateDnsNamespace(
            self._scope,
            "namespace",
            name=defaults.namespace_name,
            description=f"{defaults.name} namespace",
            vpc=vpc,
        )

    @staticmethod
    def _resolve_storage(
        options: PlatformOptions, defaults: PresetDefaults, num_brokers: int
    ) -> StorageMode:
        if options.file_system is not None:
            if options.use_efs_storage is False:
                raise TopologyError("file_system was supplied but use_efs_storage is False")
            if options.bind_mount_storage:
                raise TopologyError("file_system and bind_mount_storage are mutually exclusive")

        use_efs = _pick(
            options.use_efs_storage,
            defaults.use_efs_storage or options.file_system is not None,
        )
        if use_efs:
            if defaults.isolate_brokers and num_brokers > 1:
                return StorageMode.isolated_per_broker(options.file_system)
            return StorageMode.shared_volume(options.file_system)
        if options.bind_mount_storage:
            return StorageMode.bind_mount()
        return StorageMode.ephemeral()

    def _resolve_security(
        self,
        options: PlatformOptions,
        defaults: PresetDefaults,
        roles: Tuple[RoleKind, ...],
        vpc: ec2.IVpc,
        storage: StorageMode,
    ) -> Tuple[Dict[RoleKind, Tuple[ec2.ISecurityGroup, ...]], Optional[ec2.ISecurityGroup]]:
        builder = SecurityPolicyBuilder(self._scope, vpc, defaults.name)
        needs_storage_group = storage.uses_volume and storage.file_system is None
        precise = defaults.precise_security and options.security_groups is None

        port_overrides = {}
        user_groups: Dict[str, ec2.ISecurityGroup] = {}
        for kind in roles:
            overrides = options.overrides_for(kind).layered_over(defaults.role_overrides.get(kind))
            if overrides.port_bindings is not None:
                port_overrides[kind] = overrides.port_bindings
            if options.overrides_for(kind).security_group is not None:
                user_groups[kind.value] = options.overrides_for(kind).security_group

        rules = policy_rules(
            roles,
            precise=precise,
            storage_roles=defaults.storage_roles if needs_storage_group else (),
            port_overrides=port_overrides,
        )
        storage_rules = rules.pop(STORAGE_LAYER, None)

        if options.security_groups is not None:
            shared = tuple(options.security_groups)
            role_groups = {kind: shared for kind in roles}
            storage_group = None
            if storage_rules is not None:
                clients = {f"client-{index}": group for index, group in enumerate(shared)}
                client_rules = [
                    SecurityRule(STORAGE_LAYER, key, rule.from_port, rule.to_port, rule.transport, rule.description)
                    for rule in storage_rules
                    for key in clients
                ]
                storage_group = builder.build({STORAGE_LAYER: client_rules}, clients)[STORAGE_LAYER]
            return role_groups, storage_group

        if defaults.shared_security_group:
            group = builder.build_shared("shared", merge_rules(rules.values(), "shared"))
            role_groups = {
                kind: (user_groups[kind.value],) if kind.value in user_groups else (group,)
                for kind in roles
            }
            storage_group = None
            if storage_rules is not None:
                storage_group = builder.build({STORAGE_LAYER: storage_rules})[STORAGE_LAYER]
            return role_groups, storage_group

        if storage_rules is not None:
            rules[STORAGE_LAYER] = storage_rules
        groups = builder.build(rules, user_groups)
        role_groups = {kind: (groups[kind.value],) for kind in roles}
        return role_groups, groups.get(STORAGE_LAYER)

    @staticmethod
    def _resolve_role(
        kind: RoleKind,
        options: PlatformOptions,
        defaults: PresetDefaults,
        security_groups: Tuple[ec2.ISecurityGroup, ...],
    ) -> RoleSettings:
        base = ROLE_DEFAULTS[kind]
        user = options.overrides_for(kind)
        preset = defaults.role_overrides.get(kind, RoleOverrides())
        merged = user.layered_over(preset)

        image = merged.image
        if image is None and kind is RoleKind.DEV_ALL_IN_ONE and options.hazelcast_exporter:
            image = ecs.ContainerImage.from_registry(HAZELCAST_EXPORTER_IMAGE)
        if image is None and kind.uses_zeebe_image:
            image = options.container_image
        if image is None:
            image = ecs.ContainerImage.from_registry(
                default_image_name(
                    kind,
                    options.camunda_version or CAMUNDA_VERSION,
                    options.elastic_version or ELASTIC_VERSION,
                )
            )

        placement = user.placement
        if placement is None and kind in _PUBLIC_ENTRY_ROLES and options.public_gateway is not None:
            placement = SubnetPlacement.PUBLIC if options.public_gateway else SubnetPlacement.PRIVATE
        placement = placement or preset.placement or base.placement

        return RoleSettings(
            kind=kind,
            shape=ComputeShape(
                memory_mib=merged.memory_mib or base.shape.memory_mib,
                cpu=merged.cpu or base.shape.cpu,
            ),
            image=image,
            security_groups=security_groups,
            placement=placement,
            port_bindings=tuple(merged.port_bindings)
            if merged.port_bindings is not None
            else base.port_bindings,
            environment=dict(merged.environment) if merged.environment is not None else None,
        )

    def _create_load_balancer(self, vpc: ec2.IVpc) -> elbv2.ApplicationLoadBalancer:
        logger.debug("Creating default application load balancer")
        return elbv2.ApplicationLoadBalancer(
            self._scope,
            "alb",
            vpc=vpc,
            internet_facing=True,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
        )


def _pick(value, default):
    return default if value is None else value
