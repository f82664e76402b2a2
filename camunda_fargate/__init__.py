"""
AWS CDK constructs for Camunda 8 / Zeebe on ECS Fargate

The presets assemble VPC, Cloud Map namespace, security groups, EFS storage,
task definitions, services and load balancer routing from a small set of
options.
"""

from .config import (
    PlatformConfiguration,
    PlatformOptions,
    PortBinding,
    RoleKind,
    RoleOverrides,
    StorageKind,
    StorageMode,
    SubnetPlacement,
    Transport,
)
from .contact_points import create_contact_points
from .exceptions import TopologyError
from .presets import (
    CamundaPlatformFargate,
    CamundaPlatformSimple,
    ZeebeFargateCluster,
    ZeebeStandaloneFargate,
)

__all__ = [
    "PlatformConfiguration",
    "PlatformOptions",
    "PortBinding",
    "RoleKind",
    "RoleOverrides",
    "StorageKind",
    "StorageMode",
    "SubnetPlacement",
    "Transport",
    "create_contact_points",
    "TopologyError",
    "ZeebeFargateCluster",
    "CamundaPlatformFargate",
    "CamundaPlatformSimple",
    "ZeebeStandaloneFargate",
]
