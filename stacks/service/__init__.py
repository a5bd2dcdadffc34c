"""Service stack deploying a configured Fargate service behind a load balancer."""

from .stack import ServiceStack
from .spec_loader import build_service_spec, container_spec_from_config

__all__ = ["ServiceStack", "build_service_spec", "container_spec_from_config"]
