"""
Execution role and task role derivation.

The execution role is assumed by ECS to *launch* the task (pull images, write logs,
resolve secrets). The task role is the identity of the running application.
Statements are derived from the features a spec actually uses and scoped to the
exact resources it references.
"""

import logging
from typing import Any, Dict, Iterable, List

from .constants import (
    BASIC_EXECUTION_POLICY_NAME,
    ECS_TASK_EXECUTION_MANAGED_POLICY,
    ECS_TASKS_PRINCIPAL,
    LOGS_ACTIONS,
    LOGS_POLICY_NAME,
    PARAMETER_STORE_ACTIONS,
    PARAMETER_STORE_POLICY_NAME,
    REPOSITORY_CREDENTIALS_POLICY_NAME,
    SECRETS_MANAGER_ACTIONS,
    SECRETS_MANAGER_POLICY_NAME,
)
from .resources import IdentityArtifacts, PolicyAttachment, RoleDescriptor, logical_id_for, policy_document
from .spec import DeploymentContext, SecretSource, ServiceSpec

logger = logging.getLogger(__name__)


def unique(values: Iterable[str]) -> List[str]:
    """Deduplicate identifiers, keeping the order they were first seen in."""
    return list(dict.fromkeys(values))


def log_group_arn(log_group_name: str, context: DeploymentContext) -> str:
    """ARN covering a log group and all of its streams."""
    if log_group_name.startswith("arn:"):
        return log_group_name if log_group_name.endswith(":*") else f"{log_group_name}:*"
    return (
        f"arn:{context.partition}:logs:{context.region}:{context.account_id}"
        f":log-group:{log_group_name}:*"
    )


def assume_role_policy() -> Dict[str, Any]:
    """Trust policy letting ECS tasks assume a role."""
    return policy_document([
        {
            "Effect": "Allow",
            "Principal": {"Service": ECS_TASKS_PRINCIPAL},
            "Action": "sts:AssumeRole",
        }
    ])


def _allow(name: str, actions: List[str], resources: List[str]) -> PolicyAttachment:
    return PolicyAttachment(
        name=name,
        document=policy_document([
            {"Effect": "Allow", "Action": list(actions), "Resource": resources}
        ])
    )


def derive_statements(spec: ServiceSpec, context: DeploymentContext) -> List[PolicyAttachment]:
    """
    Derive the inline policies the execution role needs.

    One policy per feature in use, always in the same order: logs, Secrets Manager,
    Parameter Store, repository credentials. Referenced ARNs are deduplicated so
    several secrets reading different JSON keys of one secret yield a single resource.

    Args:
        spec: Validated service spec
        context: Deployment account and region

    Returns:
        The inline policies, empty when no optional feature is used
    """
    containers = spec.containers
    secrets = [secret for container in containers for secret in container.secrets]

    log_group_arns = unique(
        log_group_arn(c.log_group_name, context) for c in containers if c.log_group_name
    )
    secrets_manager_arns = unique(
        s.value_from_arn for s in secrets if s.source is SecretSource.SECRETS_MANAGER
    )
    parameter_store_arns = unique(
        s.value_from_arn for s in secrets if s.source is SecretSource.PARAMETER_STORE
    )
    repository_credentials_arns = unique(
        c.repository_credentials_arn for c in containers if c.repository_credentials_arn
    )

    candidates = [
        (LOGS_POLICY_NAME, LOGS_ACTIONS, log_group_arns),
        (SECRETS_MANAGER_POLICY_NAME, SECRETS_MANAGER_ACTIONS, secrets_manager_arns),
        (PARAMETER_STORE_POLICY_NAME, PARAMETER_STORE_ACTIONS, parameter_store_arns),
        (REPOSITORY_CREDENTIALS_POLICY_NAME, SECRETS_MANAGER_ACTIONS, repository_credentials_arns),
    ]
    return [_allow(name, actions, arns) for name, actions, arns in candidates if arns]


def build_identity(spec: ServiceSpec, context: DeploymentContext) -> IdentityArtifacts:
    """
    Build the execution role and the task role of a service.

    Args:
        spec: Validated service spec
        context: Deployment account and region

    Returns:
        Both roles with their policies
    """
    namespace = spec.namespace

    basic_policy = PolicyAttachment(
        name=BASIC_EXECUTION_POLICY_NAME,
        managed_policy_arn=f"arn:{context.partition}:iam::aws:policy/{ECS_TASK_EXECUTION_MANAGED_POLICY}"
    )
    execution_role = RoleDescriptor(
        logical_id=logical_id_for(namespace, "ExecutionRole"),
        description=f"Allows the AWS ECS service to create and manage the {namespace} service",
        assume_role_policy=assume_role_policy(),
        policies=(basic_policy, *derive_statements(spec, context))
    )

    task_policies = ()
    if spec.task_policy:
        # Attached verbatim, the contents are the caller's responsibility
        task_policies = (PolicyAttachment(name=f"{namespace}-role-policy", document=spec.task_policy),)

    task_role = RoleDescriptor(
        logical_id=logical_id_for(namespace, "TaskRole"),
        description=f"Assumed by the running tasks of the {namespace} service",
        assume_role_policy=assume_role_policy(),
        policies=task_policies
    )

    logger.debug(
        f"Execution role for '{namespace}' has policies {execution_role.policy_names}, "
        f"task role has {task_role.policy_names}"
    )
    return IdentityArtifacts(execution_role=execution_role, task_role=task_role)
