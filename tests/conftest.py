"""Shared fixtures for the service compiler and stack tests."""

import pytest

from stacks.fargate_service import (
    AlbIntegrationSpec,
    ContainerSpec,
    DeploymentContext,
    LoadBalancerPortMapping,
    PortMapping,
    ServiceSpec
)


VPC_ID = "vpc-0a1b2c3d4e5f67890"
SUBNET_IDS = ("subnet-0123456789abcdef0", "subnet-0fedcba9876543210")
LISTENER_ARN = (
    "arn:aws:elasticloadbalancing:ap-southeast-2:123456789012:"
    "listener/app/pgweb-dev-alb/50dc6c495c0c9188/f2f7dc8efc522ab2"
)
ALB_SECURITY_GROUP_ID = "sg-0123456789abcdef0"


@pytest.fixture
def context():
    """Deployment context with concrete account and region."""
    return DeploymentContext(region="ap-southeast-2", account_id="123456789012")


@pytest.fixture
def container():
    """A single web container listening on 8081."""
    return ContainerSpec(
        name="pgweb",
        image="sosedoff/pgweb:latest",
        port_mappings=(PortMapping(container_port=8081),)
    )


@pytest.fixture
def alb_integration():
    """ALB integration routing to the pgweb container."""
    return AlbIntegrationSpec(
        listener_arn=LISTENER_ARN,
        security_group_id=ALB_SECURITY_GROUP_ID,
        port_mapping=LoadBalancerPortMapping(container_name="pgweb", container_port=8081),
        rule_priority=100
    )


@pytest.fixture
def make_spec(container):
    """Factory for service specs, keyword arguments override the defaults."""
    def _make_spec(**overrides):
        values = dict(
            name="pgweb",
            stage="dev",
            containers=(container,),
            vpc_id=VPC_ID,
            subnet_ids=SUBNET_IDS
        )
        values.update(overrides)
        return ServiceSpec(**values)
    return _make_spec


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    """
    Write `config/<environment>.yaml` into a temporary working directory.

    Config loads its file relative to the working directory, so the test is moved there.
    """
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config").mkdir()

    def _write_config(content: str, environment: str = "test") -> str:
        (tmp_path / "config" / f"{environment}.yaml").write_text(content, encoding="utf-8")
        return environment
    return _write_config
