"""
Network and security policy for the Camunda roles.

Rules are first derived as plain ``SecurityRule`` records from a fixed port
table, then realised as EC2 security groups. Where the peers of a port are
known (the distributed presets) ingress is limited to the peer security
groups; the bundled presets fall back to any-source IPv4 rules.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from .config import (
    COORDINATION_PORT_RANGE,
    ELASTICSEARCH_HTTP_PORT,
    ELASTICSEARCH_TRANSPORT_PORT,
    HAZELCAST_PORT,
    MONITORING_PORT,
    NFS_PORT,
    SIMPLE_MONITOR_PORT,
    WEB_APP_PORT,
    PortBinding,
    RoleKind,
    Transport,
)

logger = logging.getLogger(__name__)

STORAGE_LAYER = "storage"


@dataclass(frozen=True)
class PortRequirement:
    from_port: int
    to_port: int
    description: str
    peers: Tuple[RoleKind, ...] = ()
    transport: Transport = Transport.TCP


@dataclass(frozen=True)
class SecurityRule:
    """One ingress permission. ``peer`` of ``None`` means any IPv4 address."""

    role: str
    peer: Optional[str]
    from_port: int
    to_port: int
    transport: Transport
    description: str

    @property
    def port(self) -> ec2.Port:
        if self.transport is Transport.UDP:
            if self.from_port == self.to_port:
                return ec2.Port.udp(self.from_port)
            return ec2.Port.udp_range(self.from_port, self.to_port)
        if self.from_port == self.to_port:
            return ec2.Port.tcp(self.from_port)
        return ec2.Port.tcp_range(self.from_port, self.to_port)


_ZEEBE_CLIENTS = (
    RoleKind.BROKER,
    RoleKind.DEV_ALL_IN_ONE,
    RoleKind.PROCESS_MONITOR_UI,
    RoleKind.TASK_LIST_UI,
)

PORT_REQUIREMENTS: Dict[RoleKind, Tuple[PortRequirement, ...]] = {
    RoleKind.GATEWAY: (
        PortRequirement(MONITORING_PORT, MONITORING_PORT, "Zeebe monitoring"),
        PortRequirement(*COORDINATION_PORT_RANGE, "Zeebe cluster ports"),
    ),
    RoleKind.BROKER: (
        PortRequirement(
            MONITORING_PORT, MONITORING_PORT, "Zeebe monitoring", (RoleKind.GATEWAY,)
        ),
        PortRequirement(
            *COORDINATION_PORT_RANGE,
            "Zeebe cluster ports",
            (RoleKind.GATEWAY, RoleKind.BROKER),
        ),
    ),
    RoleKind.INDEX_STORE: (
        PortRequirement(
            ELASTICSEARCH_HTTP_PORT, ELASTICSEARCH_HTTP_PORT, "Elasticsearch", _ZEEBE_CLIENTS
        ),
        PortRequirement(
            ELASTICSEARCH_TRANSPORT_PORT,
            ELASTICSEARCH_TRANSPORT_PORT,
            "Elasticsearch",
            _ZEEBE_CLIENTS,
        ),
    ),
    RoleKind.PROCESS_MONITOR_UI: (
        PortRequirement(WEB_APP_PORT, WEB_APP_PORT, "Operate Http"),
    ),
    RoleKind.TASK_LIST_UI: (
        PortRequirement(WEB_APP_PORT, WEB_APP_PORT, "Tasklist Http"),
    ),
    RoleKind.DEV_ALL_IN_ONE: (
        PortRequirement(MONITORING_PORT, MONITORING_PORT, "Zeebe monitoring"),
        PortRequirement(*COORDINATION_PORT_RANGE, "Zeebe cluster ports"),
    ),
    RoleKind.SIMPLE_MONITOR: (
        PortRequirement(SIMPLE_MONITOR_PORT, SIMPLE_MONITOR_PORT, "Simple Monitor Ports"),
        PortRequirement(HAZELCAST_PORT, HAZELCAST_PORT, "Hazelcast"),
        PortRequirement(HAZELCAST_PORT, HAZELCAST_PORT, "Hazelcast", transport=Transport.UDP),
    ),
}

STORAGE_REQUIREMENT = PortRequirement(NFS_PORT, NFS_PORT, "EFS Ports")


def _requirements_from_bindings(
    kind: RoleKind, bindings: Sequence[PortBinding]
) -> Tuple[PortRequirement, ...]:
    return tuple(
        PortRequirement(
            binding.container_port,
            binding.container_port,
            f"{kind.value} port {binding.container_port}",
            transport=binding.transport,
        )
        for binding in bindings
    )


def _expand(
    role: str,
    requirement: PortRequirement,
    present: Sequence[RoleKind],
    precise: bool,
) -> List[SecurityRule]:
    targets: List[Optional[str]] = [None]
    if precise and requirement.peers:
        # declared peers that are not deployed get no rule at all
        targets = [peer.value for peer in requirement.peers if peer in present]
    return [
        SecurityRule(
            role=role,
            peer=peer,
            from_port=requirement.from_port,
            to_port=requirement.to_port,
            transport=requirement.transport,
            description=requirement.description,
        )
        for peer in targets
    ]


def policy_rules(
    roles: Iterable[RoleKind],
    precise: bool = True,
    storage_roles: Iterable[RoleKind] = (),
    port_overrides: Optional[Mapping[RoleKind, Sequence[PortBinding]]] = None,
) -> Dict[str, List[SecurityRule]]:
    """
    Derive the ingress rule set of every role, plus the storage layer.

    Args:
        roles: Roles that are part of the deployment
        precise: Restrict ports with known peers to those peers' groups
        storage_roles: Roles that mount the shared file system; when empty no
            storage rule set is produced
        port_overrides: Explicit port bindings replacing a role's table entry

    Returns:
        Rule lists keyed by role kind value and ``"storage"``
    """
    present = list(dict.fromkeys(roles))
    port_overrides = port_overrides or {}
    rules: Dict[str, List[SecurityRule]] = {}

    for kind in present:
        if kind in port_overrides:
            requirements = _requirements_from_bindings(kind, port_overrides[kind])
        else:
            requirements = PORT_REQUIREMENTS[kind]
        rules[kind.value] = [
            rule
            for requirement in requirements
            for rule in _expand(kind.value, requirement, present, precise)
        ]

    mounting = [kind for kind in dict.fromkeys(storage_roles) if kind in present]
    if mounting:
        storage_requirement = PortRequirement(
            STORAGE_REQUIREMENT.from_port,
            STORAGE_REQUIREMENT.to_port,
            STORAGE_REQUIREMENT.description,
            tuple(mounting),
        )
        rules[STORAGE_LAYER] = _expand(STORAGE_LAYER, storage_requirement, present, precise)

    return rules


def merge_rules(rule_sets: Iterable[Sequence[SecurityRule]], role: str) -> List[SecurityRule]:
    """Collapse several rule sets into one, dropping duplicate permissions."""
    merged: Dict[tuple, SecurityRule] = {}
    for rule_set in rule_sets:
        for rule in rule_set:
            key = (rule.peer, rule.from_port, rule.to_port, rule.transport)
            merged.setdefault(
                key,
                SecurityRule(
                    role=role,
                    peer=rule.peer,
                    from_port=rule.from_port,
                    to_port=rule.to_port,
                    transport=rule.transport,
                    description=rule.description,
                ),
            )
    return list(merged.values())


class SecurityPolicyBuilder:
    """Realise rule sets as EC2 security groups inside ``scope``."""

    def __init__(self, scope: Construct, vpc: ec2.IVpc, name_prefix: str) -> None:
        self._scope = scope
        self._vpc = vpc
        self._name_prefix = name_prefix

    def build(
        self,
        rules: Mapping[str, Sequence[SecurityRule]],
        existing: Optional[Mapping[str, ec2.ISecurityGroup]] = None,
    ) -> Dict[str, ec2.ISecurityGroup]:
        """
        Create one security group per rule set.

        Rule sets whose key is already present in ``existing`` (caller supplied
        groups) are left untouched, but those groups still act as peers for
        the rules of the other roles.

        Returns:
            Security groups keyed like ``rules``, including the existing ones
        """
        groups: Dict[str, ec2.ISecurityGroup] = dict(existing or {})
        created = {}
        for key in rules:
            if key not in groups:
                created[key] = self._create_group(key)
        groups.update(created)

        for key, group in created.items():
            for rule in rules[key]:
                self._apply(group, rule, groups)
        return groups

    def build_shared(self, key: str, rules: Sequence[SecurityRule]) -> ec2.SecurityGroup:
        """One group named after the prefix alone, holding every rule."""
        group = self._create_group(key, f"{self._name_prefix}-sg")
        for rule in rules:
            self._apply(group, rule, {key: group})
        return group

    def _create_group(self, key: str, group_name: Optional[str] = None) -> ec2.SecurityGroup:
        group_name = group_name or f"{self._name_prefix}-{key}-sg"
        logger.debug("Creating security group %s", group_name)
        return ec2.SecurityGroup(
            self._scope,
            f"{key}-sg",
            vpc=self._vpc,
            allow_all_outbound=True,
            security_group_name=group_name,
            description=f"{self._name_prefix} {key}",
        )

    @staticmethod
    def _apply(
        group: ec2.SecurityGroup,
        rule: SecurityRule,
        groups: Mapping[str, ec2.ISecurityGroup],
    ) -> None:
        if rule.peer is None:
            peer = ec2.Peer.any_ipv4()
        else:
            # roles folded into a shared group are peers of themselves
            peer = groups.get(rule.peer, group)
        group.add_ingress_rule(peer, rule.port, rule.description, False)
