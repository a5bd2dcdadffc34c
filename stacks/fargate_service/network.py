"""Security group of a Fargate service."""

import logging

from .resources import SecurityGroupDescriptor, SecurityGroupRule, logical_id_for
from .spec import ServiceSpec

logger = logging.getLogger(__name__)


def build_network(spec: ServiceSpec) -> SecurityGroupDescriptor:
    """
    Build the service security group.

    Outbound traffic is always allowed so tasks can reach ECR, CloudWatch and their
    dependencies. Inbound traffic is only allowed from the load balancer's security
    group, on the container port, when ALB integration is configured. Without it the
    group has no ingress rule at all.

    Args:
        spec: Validated service spec

    Returns:
        The security group descriptor
    """
    egress = SecurityGroupRule(
        direction="egress",
        protocol="-1",
        cidr_ip="0.0.0.0/0",
        description="Allow all outbound traffic"
    )

    ingress = ()
    alb = spec.alb_integration
    if alb is not None:
        port = alb.port_mapping.container_port
        ingress = (SecurityGroupRule(
            direction="ingress",
            protocol="tcp",
            from_port=port,
            to_port=port,
            source_security_group_id=alb.security_group_id,
            description=f"Allow traffic from the load balancer on port {port}"
        ),)

    security_group = SecurityGroupDescriptor(
        logical_id=logical_id_for(spec.namespace, "ServiceSecurityGroup"),
        vpc_id=spec.vpc_id,
        description=f"Controls access to the {spec.namespace} service",
        egress_rules=(egress,),
        ingress_rules=ingress
    )

    logger.debug(f"Security group for '{spec.namespace}' has {len(ingress)} ingress rule(s)")
    return security_group
