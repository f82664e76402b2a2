"""
Durable storage for broker and index-store data.

A deployment either keeps its data on task local storage (lost whenever a
task is replaced) or on one EFS file system. Multi-broker clusters get one
access point per broker so that brokers never share a data directory.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from aws_cdk import RemovalPolicy, aws_ec2 as ec2, aws_efs as efs
from constructs import Construct

from .config import StorageMode

logger = logging.getLogger(__name__)

# uid/gid the Camunda images run as
OWNER_ID = "1001"
PERMISSIONS = "755"

BROKER_DATA_SCOPE = "broker-data"
INDEX_STORE_SCOPE = "elasticsearch"


@dataclass(frozen=True)
class StorageScope:
    key: str
    path: str
    broker_index: Optional[int] = None
    owner_uid: str = OWNER_ID
    owner_gid: str = OWNER_ID
    permissions: str = PERMISSIONS


def broker_scope_key(index: int) -> str:
    return f"{BROKER_DATA_SCOPE}-{index}"


def plan_broker_scopes(broker_count: int) -> List[StorageScope]:
    """
    One isolated scope per broker, ``/broker-data-<i>``.

    A single broker owns the whole volume, so no scopes are planned for
    ``broker_count <= 1``.
    """
    if broker_count <= 1:
        return []
    return [
        StorageScope(key=broker_scope_key(index), path=f"/{broker_scope_key(index)}", broker_index=index)
        for index in range(broker_count)
    ]


def plan_named_scopes(*names: str) -> List[StorageScope]:
    return [StorageScope(key=name, path=f"/{name}") for name in names]


@dataclass(frozen=True)
class ProvisionedStorage:
    """The file system and its access points keyed by scope, in plan order."""

    file_system: efs.IFileSystem
    access_points: Mapping[str, efs.IAccessPoint]

    def access_point(self, key: str) -> Optional[efs.IAccessPoint]:
        return self.access_points.get(key)

    def broker_access_point(self, index: int) -> Optional[efs.IAccessPoint]:
        return self.access_points.get(broker_scope_key(index))


class StorageProvisioner:
    """Create the EFS file system and access points a storage mode asks for."""

    def __init__(
        self,
        scope: Construct,
        vpc: ec2.IVpc,
        security_group: Optional[ec2.ISecurityGroup],
        file_system_name: str,
    ) -> None:
        self._scope = scope
        self._vpc = vpc
        self._security_group = security_group
        self._file_system_name = file_system_name

    def provision(
        self,
        mode: StorageMode,
        scopes: Sequence[StorageScope] = (),
        clients: Sequence[ec2.ISecurityGroup] = (),
    ) -> Optional[ProvisionedStorage]:
        """
        Provision storage for ``mode``.

        Args:
            mode: Resolved storage mode
            scopes: Access points to create on the file system
            clients: Security groups of the tasks mounting a caller supplied
                file system; they are granted NFS access to it

        Returns:
            The provisioned storage, or ``None`` for task local storage
        """
        if not mode.uses_volume:
            logger.warning(
                "%s: no EFS storage requested (%s); data is lost when a task is replaced",
                self._file_system_name,
                mode.kind.value,
            )
            return None

        if mode.file_system is None:
            file_system = self._create_file_system()
        else:
            file_system = mode.file_system
            for client in clients:
                file_system.connections.allow_default_port_from(client, "EFS Ports")

        access_points: Dict[str, efs.IAccessPoint] = {}
        for storage_scope in scopes:
            access_points[storage_scope.key] = self._create_access_point(file_system, storage_scope)

        logger.debug(
            "%s: provisioned %d access point(s)", self._file_system_name, len(access_points)
        )
        return ProvisionedStorage(file_system=file_system, access_points=access_points)

    def _create_file_system(self) -> efs.FileSystem:
        return efs.FileSystem(
            self._scope,
            "efs",
            vpc=self._vpc,
            encrypted=False,
            file_system_name=self._file_system_name,
            enable_automatic_backups=False,
            removal_policy=RemovalPolicy.DESTROY,
            performance_mode=efs.PerformanceMode.GENERAL_PURPOSE,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
            security_group=self._security_group,
        )

    def _create_access_point(
        self, file_system: efs.IFileSystem, storage_scope: StorageScope
    ) -> efs.AccessPoint:
        # the ACL lets the access point create its directory on first mount
        return efs.AccessPoint(
            self._scope,
            f"{storage_scope.key}-ap",
            file_system=file_system,
            path=storage_scope.path,
            create_acl=efs.Acl(
                owner_uid=storage_scope.owner_uid,
                owner_gid=storage_scope.owner_gid,
                permissions=storage_scope.permissions,
            ),
            posix_user=efs.PosixUser(uid=storage_scope.owner_uid, gid=storage_scope.owner_gid),
        )
