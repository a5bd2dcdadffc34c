"""
Application Load Balancer integration.

Builds the target group, the listener rule routing to it and the binding of the
service to the target group. ECS refuses to register a service with a target
group that is not attached to a listener yet, so the service must be created
after the listener rule; the builder returns that ordering constraint as an
explicit dependency edge.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    CATCH_ALL_PATH_PATTERN,
    LISTENER_RULE_TYPE,
    MAX_RULE_PRIORITY,
    MIN_RULE_PRIORITY,
    NAME_SUFFIX_LENGTH,
    TARGET_GROUP_DEREGISTRATION_DELAY,
    TARGET_GROUP_SLOW_START,
    TARGET_GROUP_TYPE,
)
from .resources import (
    AlbArtifacts,
    DependencyEdge,
    LoadBalancerBinding,
    ResourceDescriptor,
    SecurityGroupDescriptor,
    logical_id_for,
    name_suffix,
    ref,
)
from .spec import ListenerAction, ServiceSpec, TargetGroupHealthCheck

logger = logging.getLogger(__name__)


def target_group_name(namespace: str) -> str:
    """Physical target group name, at most 32 characters for a valid namespace."""
    return f"{namespace}-{name_suffix(namespace, NAME_SUFFIX_LENGTH)}-tg"


def health_check_properties(health_check: Optional[TargetGroupHealthCheck]) -> Dict[str, Any]:
    """Target group health check properties, defaults when none is configured."""
    health_check = health_check or TargetGroupHealthCheck()
    properties: Dict[str, Any] = {
        "HealthCheckEnabled": True,
        "HealthCheckPath": health_check.path,
        "HealthCheckIntervalSeconds": health_check.interval_seconds,
        "HealthCheckTimeoutSeconds": health_check.timeout_seconds,
        "HealthyThresholdCount": health_check.healthy_threshold_count,
        "UnhealthyThresholdCount": health_check.unhealthy_threshold_count,
        "Matcher": {"HttpCode": health_check.matcher},
    }
    if health_check.port:
        properties["HealthCheckPort"] = health_check.port
    if health_check.protocol:
        properties["HealthCheckProtocol"] = health_check.protocol
    return properties


def ordered_actions(pre_forward_actions: Tuple[ListenerAction, ...],
                    target_group_logical_id: str) -> List[Dict[str, Any]]:
    """
    Number the rule actions.

    Pre-forward actions get orders 1..n in the given sequence and the forward to the
    target group comes last at n + 1. The load balancer evaluates actions by order, so
    authentication always runs before forwarding.
    """
    actions = []
    for order, action in enumerate(pre_forward_actions, start=1):
        actions.append({"Type": action.type, **action.properties, "Order": order})

    actions.append({
        "Type": "forward",
        "TargetGroupArn": ref(target_group_logical_id),
        "Order": len(pre_forward_actions) + 1,
    })
    return actions


def build_alb_integration(spec: ServiceSpec,
                          security_group: SecurityGroupDescriptor) -> Optional[AlbArtifacts]:
    """
    Build the load balancer artifacts of a service.

    Args:
        spec: Validated service spec
        security_group: Service security group, already opened to the load balancer

    Returns:
        The artifacts, or None when the spec has no ALB integration
    """
    alb = spec.alb_integration
    if alb is None:
        logger.debug(f"No ALB integration for '{spec.namespace}'")
        return None

    namespace = spec.namespace
    target_group_id = logical_id_for(namespace, "TargetGroup")
    listener_rule_id = logical_id_for(namespace, "ListenerRule")
    service_id = logical_id_for(namespace, "Service")

    target_group = ResourceDescriptor(
        logical_id=target_group_id,
        resource_type=TARGET_GROUP_TYPE,
        properties={
            "Name": target_group_name(namespace),
            "TargetType": "ip",
            "Protocol": "HTTP",
            "Port": alb.port_mapping.container_port,
            "VpcId": security_group.vpc_id,
            **health_check_properties(alb.health_check),
            "TargetGroupAttributes": [
                {
                    "Key": "deregistration_delay.timeout_seconds",
                    "Value": str(TARGET_GROUP_DEREGISTRATION_DELAY),
                },
                {
                    # Ramp up traffic to newly registered tasks
                    "Key": "slow_start.duration_seconds",
                    "Value": str(TARGET_GROUP_SLOW_START),
                },
            ],
        }
    )

    rule_properties: Dict[str, Any] = {
        "ListenerArn": alb.listener_arn,
        "Conditions": [
            {"Field": "path-pattern", "PathPatternConfig": {"Values": [CATCH_ALL_PATH_PATTERN]}}
        ],
        "Actions": ordered_actions(tuple(alb.rule_actions), target_group_id),
    }
    if alb.rule_priority is not None:
        rule_properties["Priority"] = alb.rule_priority

    listener_rule = ResourceDescriptor(
        logical_id=listener_rule_id,
        resource_type=LISTENER_RULE_TYPE,
        properties=rule_properties
    )

    binding = LoadBalancerBinding(
        container_name=alb.port_mapping.container_name,
        container_port=alb.port_mapping.container_port,
        target_group_logical_id=target_group_id
    )

    dependency = DependencyEdge(
        dependent=service_id,
        prerequisite=listener_rule_id,
        reason="ECS only registers a service with a target group that is attached to a listener"
    )

    logger.debug(
        f"ALB integration for '{namespace}': target group {target_group_id}, "
        f"listener rule {listener_rule_id} with {len(rule_properties['Actions'])} action(s)"
    )
    return AlbArtifacts(
        target_group=target_group,
        listener_rule=listener_rule,
        binding=binding,
        dependency=dependency
    )


def derive_rule_priority(namespace: str) -> int:
    """
    Stable listener rule priority for a namespace.

    Used when a rule has to carry a priority but none was configured. Collisions with
    other rules on the listener remain the caller's responsibility.
    """
    span = MAX_RULE_PRIORITY - MIN_RULE_PRIORITY + 1
    return int(name_suffix(namespace, 8), 16) % span + MIN_RULE_PRIORITY
