#!/usr/bin/env python3
"""
Camunda 8 on ECS Fargate - CDK Python Application

Deploys one of the platform presets into its own stack:
- cluster: distributed Zeebe brokers and gateways
- platform: Zeebe, Elasticsearch, Operate and Tasklist as separate services
- simple: the same components bundled into a single task
- standalone: a single Zeebe node, optionally with Simple Monitor

The preset and its options are read from CDK context, e.g.
``cdk deploy -c preset=cluster -c num_broker_nodes=3``.
"""

import logging
import os
from typing import Any, Dict, Optional

import aws_cdk as cdk
from aws_cdk import App, Environment, Stack
from cdk_nag import AwsSolutionsChecks
from constructs import Construct

from camunda_fargate import (
    CamundaPlatformFargate,
    CamundaPlatformSimple,
    TopologyError,
    ZeebeFargateCluster,
    ZeebeStandaloneFargate,
)

logger = logging.getLogger(__name__)

PRESETS = {
    "cluster": ZeebeFargateCluster,
    "platform": CamundaPlatformFargate,
    "simple": CamundaPlatformSimple,
    "standalone": ZeebeStandaloneFargate,
}

INT_OPTIONS = ("num_broker_nodes", "num_gateway_nodes")
BOOL_OPTIONS = ("use_efs_storage", "public_gateway", "simple_monitor", "hazelcast_exporter")
STRING_OPTIONS = ("camunda_version", "elastic_version")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def context_options(app: App) -> Dict[str, Any]:
    """
    Collect preset keyword arguments from CDK context.

    Context values given on the command line arrive as strings, values from
    cdk.json keep their JSON type; both are accepted.
    """
    options: Dict[str, Any] = {}
    for key in INT_OPTIONS:
        value = app.node.try_get_context(key)
        if value is not None:
            options[key] = int(value)
    for key in BOOL_OPTIONS:
        value = app.node.try_get_context(key)
        if value is not None:
            options[key] = _as_bool(value)
    for key in STRING_OPTIONS:
        value = app.node.try_get_context(key)
        if value is not None:
            options[key] = str(value)
    return options


class CamundaFargateStack(Stack):
    """Stack holding a single platform preset."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        preset: str,
        options: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        preset_class = PRESETS.get(preset)
        if preset_class is None:
            raise TopologyError(
                f"Unknown preset '{preset}', expected one of: {', '.join(PRESETS)}"
            )
        self.platform = preset_class(self, "camunda", **(options or {}))


def main() -> None:
    """
    Main application entry point
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = App()

    preset = app.node.try_get_context("preset") or "cluster"
    options = context_options(app)
    logger.info("Synthesizing preset %s with options %s", preset, options)

    env = Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=os.environ.get("CDK_DEFAULT_REGION", "us-east-1"),
    )

    stack = CamundaFargateStack(
        app,
        "CamundaFargateStack",
        preset=preset,
        options=options,
        env=env,
        description=f"Camunda 8 on ECS Fargate ({preset})",
    )

    if _as_bool(app.node.try_get_context("enable_nag") or False):
        cdk.Aspects.of(app).add(AwsSolutionsChecks(verbose=True))

    cdk.Tags.of(stack).add("Project", "CamundaFargate")
    cdk.Tags.of(stack).add("Preset", preset)

    app.synth()


if __name__ == "__main__":
    main()
