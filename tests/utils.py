"""
Helpers for inspecting synthesized templates.
"""

from typing import Any, Dict, List

import aws_cdk as cdk
from aws_cdk import assertions

TEST_ENV = cdk.Environment(account="123456789012", region="us-east-1")


def new_stack(name: str = "TestStack") -> cdk.Stack:
    return cdk.Stack(cdk.App(), name, env=TEST_ENV)


def container_definitions(template: assertions.Template) -> List[Dict[str, Any]]:
    """All container definitions of all task definitions in ``template``."""
    containers = []
    for resource in template.find_resources("AWS::ECS::TaskDefinition").values():
        containers.extend(resource["Properties"]["ContainerDefinitions"])
    return containers


def container(template: assertions.Template, name: str) -> Dict[str, Any]:
    matches = [c for c in container_definitions(template) if c["Name"] == name]
    assert len(matches) == 1, f"expected one container named {name}, found {len(matches)}"
    return matches[0]


def environment_of(template: assertions.Template, name: str) -> Dict[str, str]:
    return {
        entry["Name"]: entry["Value"]
        for entry in container(template, name).get("Environment", [])
    }


def task_definition(template: assertions.Template, family: str) -> Dict[str, Any]:
    matches = [
        resource["Properties"]
        for resource in template.find_resources("AWS::ECS::TaskDefinition").values()
        if resource["Properties"].get("Family") == family
    ]
    assert len(matches) == 1, f"expected one task definition {family}, found {len(matches)}"
    return matches[0]
