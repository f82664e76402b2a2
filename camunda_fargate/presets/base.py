"""
Common assembly sequence of every platform preset.
"""

import logging
from typing import Dict, List, Optional, Sequence

from aws_cdk import aws_ec2 as ec2, aws_ecs as ecs, aws_efs as efs
from constructs import Construct

from ..config import PlatformOptions
from ..contact_points import ServiceDiscoveryAddressing
from ..exceptions import TopologyError
from ..renderer import TaskRenderer
from ..resolver import OptionResolver, PresetDefaults
from ..storage import ProvisionedStorage, StorageProvisioner, StorageScope

logger = logging.getLogger(__name__)


class PlatformPreset(Construct):
    """
    Resolve options, provision storage, then let the subclass lay out its
    services in ``_create_services``.

    Subclasses set ``defaults`` and ``file_system_name``.
    """

    defaults: PresetDefaults
    file_system_name: str

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        options: Optional[PlatformOptions] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id)

        self.options = PlatformOptions.build(options, **kwargs)
        self.config = OptionResolver(self).resolve(self.options, self.defaults)
        self.storage = self._create_storage()
        self.renderer = TaskRenderer(self, self.config)
        self.services: Dict[str, ecs.FargateService] = {}

        self._create_services()

        logger.info(
            "%s: %d service(s) %s, storage %s",
            construct_id,
            len(self.services),
            ", ".join(self.services),
            self.config.storage.kind.value,
        )

    @property
    def vpc(self) -> ec2.IVpc:
        return self.config.vpc

    @property
    def ecs_cluster(self) -> ecs.ICluster:
        return self.config.ecs_cluster

    @property
    def file_system(self) -> Optional[efs.IFileSystem]:
        return self.storage.file_system if self.storage is not None else None

    def storage_scopes(self) -> Sequence[StorageScope]:
        return []

    def discovery_addressing(self) -> ServiceDiscoveryAddressing:
        if self.config.namespace is None:
            raise TopologyError(
                f"{self.node.id} addresses its services through Cloud Map, "
                "use_namespace must not be False"
            )
        return ServiceDiscoveryAddressing(self.config.namespace_name)

    def _create_storage(self) -> Optional[ProvisionedStorage]:
        clients: List[ec2.ISecurityGroup] = []
        for kind in self.defaults.storage_roles:
            if self.config.has_role(kind):
                for group in self.config.role(kind).security_groups:
                    if group not in clients:
                        clients.append(group)

        provisioner = StorageProvisioner(
            self,
            self.config.vpc,
            self.config.storage_security_group,
            self.file_system_name,
        )
        scopes = self.storage_scopes() if self.config.storage.uses_volume else []
        return provisioner.provision(self.config.storage, scopes, clients)

    def _create_services(self) -> None:
        raise NotImplementedError
