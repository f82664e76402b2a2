"""
Unit tests for the single task Camunda platform preset.
"""

import pytest
from aws_cdk import assertions, aws_ec2 as ec2, aws_elasticloadbalancingv2 as elbv2

from camunda_fargate import CamundaPlatformSimple

from tests.utils import container_definitions, environment_of, new_stack, task_definition


class TestCamundaPlatformSimple:
    """Default bundled platform."""

    @pytest.fixture
    def template(self) -> assertions.Template:
        stack = new_stack()
        CamundaPlatformSimple(stack, "camunda")
        return assertions.Template.from_stack(stack)

    def test_single_service_without_discovery(self, template: assertions.Template) -> None:
        template.resource_count_is("AWS::ECS::Service", 1)
        template.resource_count_is("AWS::ECS::TaskDefinition", 1)
        template.resource_count_is("AWS::ServiceDiscovery::Service", 0)
        template.resource_count_is("AWS::ServiceDiscovery::PrivateDnsNamespace", 0)
        template.has_resource_properties(
            "AWS::ECS::Service",
            {
                "ServiceName": "camunda-core-service",
                "NetworkConfiguration": {
                    "AwsvpcConfiguration": assertions.Match.object_like(
                        {"AssignPublicIp": "DISABLED"}
                    )
                },
            },
        )

    def test_task_holds_all_components(self, template: assertions.Template) -> None:
        definition = task_definition(template, "simple-camunda-platform")

        assert definition["Cpu"] == "1024"
        assert definition["Memory"] == "3072"
        names = [c["Name"] for c in definition["ContainerDefinitions"]]
        assert names == ["elasticsearch", "zeebe", "tasklist", "operate"]
        memory = {c["Name"]: c["Memory"] for c in definition["ContainerDefinitions"]}
        assert memory == {"elasticsearch": 1200, "zeebe": 650, "tasklist": 600, "operate": 600}
        assert all("Cpu" not in c for c in definition["ContainerDefinitions"])

    def test_components_use_loopback_only(self, template: assertions.Template) -> None:
        for definition in container_definitions(template):
            for entry in definition.get("Environment", []):
                assert ".net" not in entry["Value"]
                if ":" in entry["Value"] and "//" not in entry["Value"]:
                    assert entry["Value"].startswith("localhost:")

        assert environment_of(template, "zeebe")[
            "ZEEBE_BROKER_EXPORTERS_ELASTICSEARCH_ARGS_URL"
        ] == "http://localhost:9200"
        assert (
            environment_of(template, "tasklist")["CAMUNDA_TASKLIST_ZEEBE_GATEWAYADDRESS"]
            == "localhost:26500"
        )

    def test_operate_moves_off_the_tasklist_port(self, template: assertions.Template) -> None:
        operate = [c for c in container_definitions(template) if c["Name"] == "operate"][0]

        assert [mapping["ContainerPort"] for mapping in operate["PortMappings"]] == [8000]
        assert environment_of(template, "operate")["SERVER_PORT"] == "8000"

    def test_shared_log_group(self, template: assertions.Template) -> None:
        template.resource_count_is("AWS::Logs::LogGroup", 1)
        template.has_resource_properties(
            "AWS::Logs::LogGroup", {"LogGroupName": "/ecs/core/simple-camunda-platform"}
        )
        prefixes = {
            c["LogConfiguration"]["Options"]["awslogs-stream-prefix"]
            for c in container_definitions(template)
        }
        assert prefixes == {"elasticsearch", "zeebe", "tasklist", "operate"}

    def test_storage_scopes_are_mounted(self, template: assertions.Template) -> None:
        template.resource_count_is("AWS::EFS::FileSystem", 1)
        template.resource_count_is("AWS::EFS::AccessPoint", 2)

        definition = task_definition(template, "simple-camunda-platform")
        assert len(definition["Volumes"]) == 2
        mounts = {
            c["Name"]: c["MountPoints"][0]["ContainerPath"]
            for c in definition["ContainerDefinitions"]
            if c.get("MountPoints")
        }
        assert mounts == {
            "elasticsearch": "/usr/share/elasticsearch/data",
            "zeebe": "/usr/local/zeebe/data",
        }

    def test_security_groups_are_any_source(self, template: assertions.Template) -> None:
        template.has_resource_properties(
            "AWS::EC2::SecurityGroup",
            {
                "GroupName": "camunda-simple-operate-sg",
                "SecurityGroupIngress": [
                    assertions.Match.object_like(
                        {"CidrIp": "0.0.0.0/0", "FromPort": 8000, "ToPort": 8000}
                    )
                ],
            },
        )


class TestSimpleOptions:
    """Option handling of the bundled platform."""

    def test_without_storage(self) -> None:
        stack = new_stack()
        CamundaPlatformSimple(stack, "camunda", use_efs_storage=False)

        template = assertions.Template.from_stack(stack)
        template.resource_count_is("AWS::EFS::FileSystem", 0)
        assert all(not c.get("MountPoints") for c in container_definitions(template))

    def test_ui_routing_targets_ui_containers(self) -> None:
        stack = new_stack()
        CamundaPlatformSimple(stack, "camunda", route_ui_paths=True, create_load_balancer=True)

        template = assertions.Template.from_stack(stack)
        template.resource_count_is("AWS::ElasticLoadBalancingV2::TargetGroup", 2)
        template.has_resource_properties(
            "AWS::ECS::Service",
            {
                "LoadBalancers": assertions.Match.array_with(
                    [assertions.Match.object_like({"ContainerName": "operate", "ContainerPort": 8000})]
                )
            },
        )

    def test_supplied_load_balancer_enables_routing(self) -> None:
        stack = new_stack()
        vpc = ec2.Vpc(stack, "vpc")
        alb = elbv2.ApplicationLoadBalancer(stack, "alb", vpc=vpc, internet_facing=True)

        CamundaPlatformSimple(stack, "camunda", vpc=vpc, load_balancer=alb)

        template = assertions.Template.from_stack(stack)
        template.resource_count_is("AWS::ElasticLoadBalancingV2::LoadBalancer", 1)
        template.resource_count_is("AWS::ElasticLoadBalancingV2::TargetGroup", 2)
        template.resource_count_is("AWS::ElasticLoadBalancingV2::ListenerRule", 2)

    def test_supplied_load_balancer_with_routing_disabled(self) -> None:
        stack = new_stack()
        vpc = ec2.Vpc(stack, "vpc")
        alb = elbv2.ApplicationLoadBalancer(stack, "alb", vpc=vpc, internet_facing=True)

        CamundaPlatformSimple(stack, "camunda", vpc=vpc, load_balancer=alb, route_ui_paths=False)

        template = assertions.Template.from_stack(stack)
        template.resource_count_is("AWS::ElasticLoadBalancingV2::TargetGroup", 0)
