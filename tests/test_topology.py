"""
Unit tests for role and service records built by the topology builder.
"""

import pytest

from camunda_fargate import ZeebeFargateCluster
from camunda_fargate.config import RoleKind, RoleOverrides, SubnetPlacement
from camunda_fargate.contact_points import LoopbackAddressing
from camunda_fargate.exceptions import TopologyError
from camunda_fargate.topology import TopologyBuilder

from tests.utils import new_stack


def _builder(**options) -> TopologyBuilder:
    cluster = ZeebeFargateCluster(new_stack(), "zeebe", **options)
    return TopologyBuilder(cluster.config, cluster.storage, cluster.discovery_addressing())


class TestRoleSpecs:
    """Container level records."""

    def test_broker_environment(self) -> None:
        role = _builder(num_broker_nodes=3).build_role(RoleKind.BROKER, 2)

        assert role.name == "zeebe-broker-2"
        assert role.container_name == "zeebe-broker"
        assert role.environment["ZEEBE_BROKER_CLUSTER_NODEID"] == "2"
        assert role.environment["ZEEBE_BROKER_CLUSTER_CLUSTERSIZE"] == "3"
        assert role.environment["ZEEBE_BROKER_CLUSTER_PARTITIONSCOUNT"] == "3"
        assert role.environment["ZEEBE_BROKER_CLUSTER_REPLICATIONFACTOR"] == "3"
        assert role.environment["ZEEBE_BROKER_GATEWAY_ENABLE"] == "false"
        assert role.environment["ZEEBE_BROKER_CLUSTER_INITIALCONTACTPOINTS"] == (
            "zeebe-broker-0.zeebe-cluster.net:26502,"
            "zeebe-broker-1.zeebe-cluster.net:26502,"
            "zeebe-broker-2.zeebe-cluster.net:26502"
        )
        assert role.log_group_name == "/ecs/zeebe-broker-2"

    def test_gateway_environment_seeds_first_broker_only(self) -> None:
        role = _builder(num_broker_nodes=3).build_role(RoleKind.GATEWAY, 0)

        assert role.environment["ZEEBE_STANDALONE_GATEWAY"] == "true"
        assert (
            role.environment["ZEEBE_GATEWAY_CLUSTER_CONTACTPOINT"]
            == "zeebe-broker-0.zeebe-cluster.net:26502"
        )
        assert role.environment["ZEEBE_GATEWAY_CLUSTER_MEMBERID"] == "zeebe-gateway-0"
        assert (
            role.environment["ZEEBE_GATEWAY_CLUSTER_HOST"] == "zeebe-gateway-0.zeebe-cluster.net"
        )

    def test_isolated_brokers_mount_their_own_access_point(self) -> None:
        builder = _builder(num_broker_nodes=3)

        mounts = [builder.build_role(RoleKind.BROKER, index).volume_mount for index in range(3)]

        assert all(mount.container_path == "/usr/local/zeebe/data" for mount in mounts)
        assert [mount.volume.access_point for mount in mounts] == [
            builder.storage.broker_access_point(index) for index in range(3)
        ]
        assert len({mount.volume.name for mount in mounts}) == 3

    def test_single_broker_mounts_volume_root(self) -> None:
        mount = _builder(num_broker_nodes=1).build_role(RoleKind.BROKER, 0).volume_mount

        assert mount.volume.access_point is None
        assert mount.volume.root_directory == "/"

    def test_no_storage_means_no_mount(self) -> None:
        builder = _builder(use_efs_storage=False)

        assert builder.storage is None
        assert builder.build_role(RoleKind.BROKER, 0).volume_mount is None

    def test_gateway_never_mounts_storage(self) -> None:
        assert _builder().build_role(RoleKind.GATEWAY, 0).volume_mount is None

    def test_environment_override_replaces_computed_environment(self) -> None:
        builder = _builder(roles={RoleKind.BROKER: RoleOverrides(environment={"ZEEBE_LOG_LEVEL": "INFO"})})

        assert builder.build_role(RoleKind.BROKER, 0).environment == {"ZEEBE_LOG_LEVEL": "INFO"}

    def test_broker_requires_index(self) -> None:
        with pytest.raises(TopologyError):
            _builder().build_role(RoleKind.BROKER)

    def test_absent_role(self) -> None:
        with pytest.raises(TopologyError, match="operate"):
            _builder().build_role(RoleKind.PROCESS_MONITOR_UI)

    def test_loopback_addressing(self) -> None:
        cluster = ZeebeFargateCluster(new_stack(), "zeebe", num_broker_nodes=1)
        builder = TopologyBuilder(cluster.config, cluster.storage, LoopbackAddressing())

        environment = builder.build_role(RoleKind.GATEWAY, 0).environment

        assert environment["ZEEBE_GATEWAY_CLUSTER_CONTACTPOINT"] == "localhost:26502"


class TestServiceSpecs:
    """Service level records."""

    def test_gateway_service_is_public(self) -> None:
        _, service = _builder().build(RoleKind.GATEWAY, 0)

        assert service.service_name == "zeebe-gateway-0"
        assert service.placement is SubnetPlacement.PUBLIC
        assert service.assign_public_ip is True
        assert service.discovery_name == "zeebe-gateway-0"
        assert (service.min_healthy_percent, service.max_healthy_percent) == (100, 200)

    def test_broker_service_is_private(self) -> None:
        _, service = _builder().build(RoleKind.BROKER, 1)

        assert service.placement is SubnetPlacement.PRIVATE
        assert service.assign_public_ip is False
        assert len(service.security_groups) == 1

    def test_private_gateway(self) -> None:
        _, service = _builder(public_gateway=False).build(RoleKind.GATEWAY, 0)

        assert service.placement is SubnetPlacement.PRIVATE
        assert service.assign_public_ip is False
