"""Task definition and ECS service assembly."""

import logging
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_MAXIMUM_PERCENT,
    DEFAULT_MINIMUM_HEALTHY_PERCENT,
    FAMILY_SUFFIX_LENGTH,
    HEALTH_CHECK_GRACE_PERIOD,
    OUTPUT_EXECUTION_ROLE_ARN,
    OUTPUT_LISTENER_RULE_ARN,
    OUTPUT_SECURITY_GROUP_ID,
    OUTPUT_TARGET_GROUP_ARN,
    OUTPUT_TASK_DEFINITION_ARN,
    OUTPUT_TASK_ROLE_ARN,
    SERVICE_TYPE,
    TASK_DEFINITION_TYPE,
)
from .containers import to_cloudformation
from .resources import (
    AlbArtifacts,
    IdentityArtifacts,
    ResourceDescriptor,
    SecurityGroupDescriptor,
    ServiceGraph,
    get_att,
    logical_id_for,
    name_suffix,
    ref,
)
from .spec import ServiceSpec

logger = logging.getLogger(__name__)


def task_family(namespace: str) -> str:
    return f"{namespace}-{name_suffix(namespace, FAMILY_SUFFIX_LENGTH)}"


def build_task_definition(identity: IdentityArtifacts,
                          container_definitions: List[Dict[str, Any]],
                          spec: ServiceSpec) -> ResourceDescriptor:
    return ResourceDescriptor(
        logical_id=logical_id_for(spec.namespace, "TaskDefinition"),
        resource_type=TASK_DEFINITION_TYPE,
        properties={
            "Family": task_family(spec.namespace),
            "ExecutionRoleArn": get_att(identity.execution_role.logical_id, "Arn"),
            "TaskRoleArn": get_att(identity.task_role.logical_id, "Arn"),
            "NetworkMode": "awsvpc",
            "RequiresCompatibilities": ["FARGATE"],
            "Cpu": str(spec.cpu),
            "Memory": str(spec.memory),
            "ContainerDefinitions": to_cloudformation(container_definitions),
        }
    )


def assemble(identity: IdentityArtifacts,
             network: SecurityGroupDescriptor,
             container_definitions: List[Dict[str, Any]],
             alb_artifacts: Optional[AlbArtifacts],
             spec: ServiceSpec) -> ServiceGraph:
    """
    Combine the built artifacts into the service's resource graph.

    Args:
        identity: Execution and task roles
        network: Service security group
        container_definitions: Compiled ECS container definitions
        alb_artifacts: Load balancer artifacts, None without ALB integration
        spec: Validated service spec

    Returns:
        The resource graph, listed in creation order
    """
    namespace = spec.namespace
    task_definition = build_task_definition(identity, container_definitions, spec)

    service_properties: Dict[str, Any] = {
        "LaunchType": "FARGATE",
        "DesiredCount": spec.desired_count,
        "TaskDefinition": ref(task_definition.logical_id),
        "DeploymentConfiguration": {
            "MinimumHealthyPercent": DEFAULT_MINIMUM_HEALTHY_PERCENT,
            "MaximumPercent": DEFAULT_MAXIMUM_PERCENT,
            # Circuit breaker is always enabled with rollback for reliability
            "DeploymentCircuitBreaker": {"Enable": True, "Rollback": True},
        },
        "NetworkConfiguration": {
            "AwsvpcConfiguration": {
                "AssignPublicIp": "DISABLED",
                "SecurityGroups": [network.group_id],
                "Subnets": list(spec.subnet_ids),
            }
        },
    }
    if spec.cluster:
        service_properties["Cluster"] = spec.cluster

    depends_on = ()
    edges = ()
    if alb_artifacts is not None:
        service_properties["LoadBalancers"] = [alb_artifacts.binding.to_properties()]
        service_properties["HealthCheckGracePeriodSeconds"] = HEALTH_CHECK_GRACE_PERIOD
        depends_on = (alb_artifacts.dependency.prerequisite,)
        edges = (alb_artifacts.dependency,)

    service = ResourceDescriptor(
        logical_id=logical_id_for(namespace, "Service"),
        resource_type=SERVICE_TYPE,
        properties=service_properties,
        depends_on=depends_on
    )

    resources = [
        identity.execution_role.to_resource(),
        identity.task_role.to_resource(),
        network.to_resource(),
    ]
    if alb_artifacts is not None:
        resources.extend([alb_artifacts.target_group, alb_artifacts.listener_rule])
    resources.extend([task_definition, service])

    outputs: Dict[str, Any] = {
        OUTPUT_EXECUTION_ROLE_ARN: get_att(identity.execution_role.logical_id, "Arn"),
        OUTPUT_TASK_ROLE_ARN: get_att(identity.task_role.logical_id, "Arn"),
        OUTPUT_SECURITY_GROUP_ID: network.group_id,
        OUTPUT_TASK_DEFINITION_ARN: ref(task_definition.logical_id),
    }
    if alb_artifacts is not None:
        outputs[OUTPUT_TARGET_GROUP_ARN] = ref(alb_artifacts.target_group.logical_id)
        outputs[OUTPUT_LISTENER_RULE_ARN] = ref(alb_artifacts.listener_rule.logical_id)

    logger.debug(f"Assembled {len(resources)} resources for '{namespace}'")
    return ServiceGraph(
        namespace=namespace,
        resources=tuple(resources),
        edges=edges,
        outputs=outputs
    )
