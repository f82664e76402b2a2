"""
Platform presets

Each preset is a CDK construct assembling a complete Camunda 8 / Zeebe
topology on ECS Fargate from a partial set of options.
"""

from .base import PlatformPreset
from .platform import CamundaPlatformFargate
from .platform_simple import CamundaPlatformSimple
from .standalone import ZeebeStandaloneFargate
from .zeebe_cluster import ZeebeFargateCluster

__all__ = [
    "PlatformPreset",
    "ZeebeFargateCluster",
    "CamundaPlatformFargate",
    "CamundaPlatformSimple",
    "ZeebeStandaloneFargate",
]
