"""
Fargate service compiler.

Turns a declarative `ServiceSpec` into a validated, ordered graph of CloudFormation
resources (execution and task roles, security group, optional target group and
listener rule, task definition, ECS service) and renders it with CDK.
"""

from .spec import (
    AlbIntegrationSpec,
    ContainerSpec,
    DeploymentContext,
    EnvironmentVariable,
    ListenerAction,
    LoadBalancerPortMapping,
    PortMapping,
    SecretRef,
    SecretSource,
    ServiceSpec,
    TargetGroupHealthCheck
)

from .resources import (
    AlbArtifacts,
    DependencyEdge,
    IdentityArtifacts,
    LoadBalancerBinding,
    PolicyAttachment,
    ResourceDescriptor,
    RoleDescriptor,
    SecurityGroupDescriptor,
    SecurityGroupRule,
    ServiceGraph
)

from .validation import ServiceSpecValidator
from .identity import build_identity, derive_statements
from .network import build_network
from .containers import compile_container_definitions
from .load_balancer import build_alb_integration
from .assembler import assemble
from .compiler import compile_service
from .construct import FargateServiceConstruct

__all__ = [
    # Spec
    "AlbIntegrationSpec",
    "ContainerSpec",
    "DeploymentContext",
    "EnvironmentVariable",
    "ListenerAction",
    "LoadBalancerPortMapping",
    "PortMapping",
    "SecretRef",
    "SecretSource",
    "ServiceSpec",
    "TargetGroupHealthCheck",

    # Derived resources
    "AlbArtifacts",
    "DependencyEdge",
    "IdentityArtifacts",
    "LoadBalancerBinding",
    "PolicyAttachment",
    "ResourceDescriptor",
    "RoleDescriptor",
    "SecurityGroupDescriptor",
    "SecurityGroupRule",
    "ServiceGraph",

    # Components
    "ServiceSpecValidator",
    "build_identity",
    "derive_statements",
    "build_network",
    "compile_container_definitions",
    "build_alb_integration",
    "assemble",
    "compile_service",
    "FargateServiceConstruct"
]
