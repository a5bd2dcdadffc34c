"""
Container definition compilation.

Maps each `ContainerSpec` to an ECS container definition in the shape of the ECS
API (`name`, `image`, `portMappings`, `secrets[{name, valueFrom}]`, ...). No semantic
validation happens here, the spec has already been validated.
"""

import logging
from typing import Any, Dict, Iterable, List

from .constants import LOG_DRIVER
from .spec import ContainerSpec, DeploymentContext, SecretRef, SecretSource

logger = logging.getLogger(__name__)

# Maps whose keys are user supplied and must keep their casing
FREE_FORM_KEYS = frozenset({"options", "dockerLabels"})


def secret_value_from(secret: SecretRef) -> str:
    """
    Resolve a secret reference to the `valueFrom` ECS expects.

    A Secrets Manager JSON key uses the `<arn>:<json-key>:<version-stage>:<version-id>`
    form with the version fields left empty.
    """
    if secret.json_key and secret.source is SecretSource.SECRETS_MANAGER:
        return f"{secret.value_from_arn}:{secret.json_key}::"
    return secret.value_from_arn


def compile_container(container: ContainerSpec, context: DeploymentContext) -> Dict[str, Any]:
    """
    Compile one container.

    Args:
        container: Container spec
        context: Deployment account and region, used for the log configuration

    Returns:
        ECS container definition
    """
    definition: Dict[str, Any] = {
        "name": container.name,
        "image": container.image,
        "essential": container.essential,
    }

    if container.cpu is not None:
        definition["cpu"] = container.cpu
    if container.memory is not None:
        definition["memory"] = container.memory
    if container.memory_reservation is not None:
        definition["memoryReservation"] = container.memory_reservation

    port_mappings = []
    for mapping in container.port_mappings:
        port_mapping: Dict[str, Any] = {
            "containerPort": mapping.container_port,
            "protocol": mapping.protocol,
        }
        if mapping.host_port is not None:
            port_mapping["hostPort"] = mapping.host_port
        port_mappings.append(port_mapping)
    definition["portMappings"] = port_mappings

    definition["environment"] = [{"name": env.name, "value": env.value} for env in container.environment]
    definition["secrets"] = [
        {"name": secret.name, "valueFrom": secret_value_from(secret)} for secret in container.secrets
    ]

    if container.log_group_name:
        definition["logConfiguration"] = {
            "logDriver": LOG_DRIVER,
            "options": {
                "awslogs-group": container.log_group_name,
                "awslogs-region": context.region,
                "awslogs-stream-prefix": container.name,
            },
        }

    if container.repository_credentials_arn:
        definition["repositoryCredentials"] = {"credentialsParameter": container.repository_credentials_arn}

    if container.health_check:
        definition["healthCheck"] = dict(container.health_check)
    if container.command:
        definition["command"] = list(container.command)
    if container.entry_point:
        definition["entryPoint"] = list(container.entry_point)
    if container.working_directory:
        definition["workingDirectory"] = container.working_directory

    # Pass-through fields never override the ones compiled above
    for key, value in container.extra_options.items():
        definition.setdefault(key, value)

    return definition


def compile_container_definitions(containers: Iterable[ContainerSpec],
                                  context: DeploymentContext) -> List[Dict[str, Any]]:
    """
    Compile containers into ECS container definitions, one to one and in order.

    Args:
        containers: Container specs
        context: Deployment account and region

    Returns:
        ECS container definitions
    """
    definitions = [compile_container(container, context) for container in containers]
    logger.debug(f"Compiled {len(definitions)} container definition(s): {[d['name'] for d in definitions]}")
    return definitions


def to_cloudformation(value: Any) -> Any:
    """
    Convert an ECS API shaped container definition to CloudFormation casing.

    CloudFormation uses the same field names with a leading capital. Free form maps
    such as log driver options and docker labels keep their keys.
    """
    if isinstance(value, list):
        return [to_cloudformation(item) for item in value]
    if isinstance(value, dict):
        converted = {}
        for key, item in value.items():
            cfn_key = key[0].upper() + key[1:] if key else key
            converted[cfn_key] = dict(item) if key in FREE_FORM_KEYS else to_cloudformation(item)
        return converted
    return value
