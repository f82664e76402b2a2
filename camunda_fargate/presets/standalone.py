"""
Standalone Zeebe: one node acting as gateway and broker, optionally with the
Zeebe Simple Monitor running as a sidecar in the same task.
"""

from ..config import ComputeShape, RoleKind
from ..contact_points import LoopbackAddressing
from ..resolver import PresetDefaults
from ..topology import TopologyBuilder
from .base import PlatformPreset

SERVICE_NAME = "zeebe-standalone"
MONITOR_TASK_CPU = 1024


class ZeebeStandaloneFargate(PlatformPreset):
    """
    Single node Zeebe for development.

    Storage is ephemeral unless a file system is supplied (mounted at the
    Zeebe data directory) or ``bind_mount_storage`` is set. The service is
    only registered in Cloud Map when ``use_namespace`` or ``namespace`` is
    given.
    """

    defaults = PresetDefaults(
        name="zeebe-standalone",
        cluster_name="zeebe-standalone",
        namespace_name="zeebe-cluster.net",
        roles=(RoleKind.DEV_ALL_IN_ONE, RoleKind.SIMPLE_MONITOR),
        storage_roles=(RoleKind.DEV_ALL_IN_ONE,),
        service_discovery=False,
        use_efs_storage=False,
        precise_security=False,
        shared_security_group=True,
    )
    file_system_name = "zeebe-standalone-efs"

    def task_shape(self) -> ComputeShape:
        zeebe = self.config.role(RoleKind.DEV_ALL_IN_ONE).shape
        if not self.config.simple_monitor:
            return zeebe
        monitor = self.config.role(RoleKind.SIMPLE_MONITOR).shape
        return ComputeShape(
            memory_mib=zeebe.memory_mib + monitor.memory_mib,
            cpu=max(zeebe.cpu or 0, MONITOR_TASK_CPU),
        )

    def _create_services(self) -> None:
        builder = TopologyBuilder(
            self.config,
            self.storage,
            LoopbackAddressing(),
            shared_log_group=f"/ecs/{SERVICE_NAME}",
            role_names={RoleKind.DEV_ALL_IN_ONE: SERVICE_NAME},
        )
        roles, service = builder.build_bundled(
            SERVICE_NAME, list(self.config.roles), RoleKind.DEV_ALL_IN_ONE
        )
        self.services[SERVICE_NAME] = self.renderer.render(
            SERVICE_NAME, SERVICE_NAME, self.task_shape(), roles, service
        )
