"""
Unit tests for storage planning and EFS provisioning.
"""

import logging

import pytest
from aws_cdk import assertions, aws_ec2 as ec2, aws_efs as efs

from camunda_fargate.config import StorageMode
from camunda_fargate.storage import (
    StorageProvisioner,
    plan_broker_scopes,
    plan_named_scopes,
)

from tests.utils import new_stack


class TestStoragePlanning:
    """Pure access point planning."""

    @pytest.mark.parametrize("broker_count", [0, 1])
    def test_no_scopes_for_a_single_broker(self, broker_count: int) -> None:
        assert plan_broker_scopes(broker_count) == []

    def test_one_scope_per_broker(self) -> None:
        scopes = plan_broker_scopes(3)

        assert [scope.path for scope in scopes] == [
            "/broker-data-0",
            "/broker-data-1",
            "/broker-data-2",
        ]
        assert [scope.broker_index for scope in scopes] == [0, 1, 2]
        assert len({scope.key for scope in scopes}) == 3
        assert all(scope.owner_uid == "1001" and scope.permissions == "755" for scope in scopes)

    def test_named_scopes(self) -> None:
        scopes = plan_named_scopes("broker-data", "elasticsearch")

        assert [scope.path for scope in scopes] == ["/broker-data", "/elasticsearch"]
        assert all(scope.broker_index is None for scope in scopes)


class TestStorageProvisioner:
    """EFS file system and access point creation."""

    def setup_method(self) -> None:
        self.stack = new_stack()
        self.vpc = ec2.Vpc(self.stack, "vpc")
        self.group = ec2.SecurityGroup(self.stack, "storage-sg", vpc=self.vpc)
        self.provisioner = StorageProvisioner(self.stack, self.vpc, self.group, "zeebe-efs")

    def test_ephemeral_storage_provisions_nothing(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="camunda_fargate.storage"):
            provisioned = self.provisioner.provision(StorageMode.ephemeral())

        assert provisioned is None
        assert "data is lost" in caplog.text
        template = assertions.Template.from_stack(self.stack)
        template.resource_count_is("AWS::EFS::FileSystem", 0)

    def test_bind_mount_provisions_nothing(self) -> None:
        assert self.provisioner.provision(StorageMode.bind_mount()) is None

    def test_isolated_storage_creates_one_access_point_per_broker(self) -> None:
        provisioned = self.provisioner.provision(
            StorageMode.isolated_per_broker(), plan_broker_scopes(3)
        )

        assert provisioned is not None
        assert list(provisioned.access_points) == [
            "broker-data-0",
            "broker-data-1",
            "broker-data-2",
        ]
        assert provisioned.broker_access_point(1) is provisioned.access_point("broker-data-1")

        template = assertions.Template.from_stack(self.stack)
        template.resource_count_is("AWS::EFS::FileSystem", 1)
        template.resource_count_is("AWS::EFS::AccessPoint", 3)
        template.has_resource_properties(
            "AWS::EFS::FileSystem",
            {
                "Encrypted": False,
                "PerformanceMode": "generalPurpose",
                "FileSystemTags": [{"Key": "Name", "Value": "zeebe-efs"}],
            },
        )
        template.has_resource("AWS::EFS::FileSystem", {"DeletionPolicy": "Delete"})
        template.has_resource_properties(
            "AWS::EFS::AccessPoint",
            {
                "RootDirectory": {
                    "Path": "/broker-data-2",
                    "CreationInfo": {
                        "OwnerUid": "1001",
                        "OwnerGid": "1001",
                        "Permissions": "755",
                    },
                },
                "PosixUser": {"Uid": "1001", "Gid": "1001"},
            },
        )

    def test_shared_volume_without_scopes(self) -> None:
        provisioned = self.provisioner.provision(StorageMode.shared_volume())

        assert provisioned is not None
        assert provisioned.access_point("broker-data") is None
        template = assertions.Template.from_stack(self.stack)
        template.resource_count_is("AWS::EFS::FileSystem", 1)
        template.resource_count_is("AWS::EFS::AccessPoint", 0)

    def test_supplied_file_system_is_reused(self) -> None:
        file_system = efs.FileSystem(self.stack, "existing-efs", vpc=self.vpc)
        client = ec2.SecurityGroup(self.stack, "client-sg", vpc=self.vpc)

        provisioned = self.provisioner.provision(
            StorageMode.shared_volume(file_system), clients=[client]
        )

        assert provisioned.file_system is file_system
        template = assertions.Template.from_stack(self.stack)
        template.resource_count_is("AWS::EFS::FileSystem", 1)
        template.has_resource_properties(
            "AWS::EC2::SecurityGroupIngress",
            {"FromPort": 2049, "ToPort": 2049, "Description": "EFS Ports"},
        )
