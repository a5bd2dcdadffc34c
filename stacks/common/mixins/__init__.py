"""Mixin classes for CDK stacks."""

from .security import SecurityGroupMixin
from .load_balancer_logging import LoadBalancerLoggingMixin

__all__ = [
    "SecurityGroupMixin",
    "LoadBalancerLoggingMixin"
]
