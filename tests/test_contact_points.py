"""
Unit tests for contact point formatting and role addressing.
"""

from camunda_fargate.contact_points import (
    LoopbackAddressing,
    ServiceDiscoveryAddressing,
    broker_address,
    create_contact_points,
)


class TestCreateContactPoints:
    """Broker contact point list rendering."""

    def test_zero_brokers_is_empty(self) -> None:
        assert create_contact_points(26502, "zeebe-cluster.net", 0) == ""

    def test_single_broker(self) -> None:
        assert (
            create_contact_points(26502, "zeebe-cluster.net", 1)
            == "zeebe-broker-0.zeebe-cluster.net:26502"
        )

    def test_brokers_in_ascending_order_without_trailing_delimiter(self) -> None:
        contact_points = create_contact_points(26502, "ns", 3)

        assert contact_points == (
            "zeebe-broker-0.ns:26502,zeebe-broker-1.ns:26502,zeebe-broker-2.ns:26502"
        )
        assert not contact_points.endswith(",")
        assert contact_points.count(",") == 2

    def test_broker_address_defaults_to_cluster_port(self) -> None:
        assert broker_address(4, "ns") == "zeebe-broker-4.ns:26502"


class TestAddressing:
    """Service discovery and loopback addressing strategies."""

    def test_service_discovery_endpoint(self) -> None:
        addressing = ServiceDiscoveryAddressing("camunda-cluster.net")

        assert addressing.host("zeebe") == "zeebe.camunda-cluster.net"
        assert addressing.endpoint("zeebe", 26500) == "zeebe.camunda-cluster.net:26500"
        assert (
            addressing.endpoint("elasticsearch", 9200, "http")
            == "http://elasticsearch.camunda-cluster.net:9200"
        )
        assert addressing.contact_points(26502, 2) == create_contact_points(
            26502, "camunda-cluster.net", 2
        )

    def test_loopback_ignores_service_names(self) -> None:
        addressing = LoopbackAddressing()

        assert addressing.host("elasticsearch") == "localhost"
        assert addressing.endpoint("elasticsearch", 9200, "http") == "http://localhost:9200"
        assert addressing.contact_points(26502, 1) == "localhost:26502"
        assert addressing.contact_points(26502, 0) == ""
