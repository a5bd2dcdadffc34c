"""
CDK Stack modules for Fargate web services.

This package provides:
- A compiler turning a declarative service spec into the CloudFormation resources
  of a Fargate service (`stacks.fargate_service`)
- A stack deploying a configured service behind a load balancer (`stacks.service`)
- Base classes, mixins, exceptions and validators shared by the stacks (`stacks.common`)
"""

# Import common components first, the service compiler depends on them
from .common import (
    BaseStack,
    SecurityGroupMixin,
    LoadBalancerLoggingMixin,
    StackConfigurationError,
    ResourceCreationError,
    ValidationError,
    ServiceSpecValidationError,
    ConfigValidator
)

from .fargate_service import FargateServiceConstruct, ServiceSpec, compile_service
from .service import ServiceStack

__all__ = [
    # Stack classes
    "ServiceStack",

    # Constructs
    "FargateServiceConstruct",
    "ServiceSpec",
    "compile_service",

    # Base classes
    "BaseStack",

    # Mixins
    "SecurityGroupMixin",
    "LoadBalancerLoggingMixin",

    # Exceptions
    "StackConfigurationError",
    "ResourceCreationError",
    "ValidationError",
    "ServiceSpecValidationError",

    # Validators
    "ConfigValidator"
]
