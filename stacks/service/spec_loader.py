"""
Maps the deployment configuration onto a `ServiceSpec`.

Configuration keys use the PascalCase of the YAML files; see
`config/development.yaml` for a documented example.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from helper.config import Config
from stacks.common.constants import DEFAULT_HEALTH_CHECK_PATH
from stacks.common.exceptions import StackConfigurationError
from stacks.fargate_service.constants import DEFAULT_DESIRED_COUNT
from stacks.fargate_service import (
    AlbIntegrationSpec,
    ContainerSpec,
    EnvironmentVariable,
    ListenerAction,
    LoadBalancerPortMapping,
    PortMapping,
    SecretRef,
    SecretSource,
    ServiceSpec,
    TargetGroupHealthCheck
)

logger = logging.getLogger(__name__)


def _secret_ref(item: Dict[str, Any]) -> SecretRef:
    source = item.get('Source', SecretSource.SECRETS_MANAGER.value)
    try:
        secret_source = SecretSource(source)
    except ValueError as e:
        raise StackConfigurationError(
            f"Unknown secret source '{source}' for secret '{item.get('Name')}', "
            f"expected one of {[s.value for s in SecretSource]}",
            config_key="Container.Secrets"
        ) from e

    return SecretRef(
        name=item['Name'],
        value_from_arn=item['ValueFrom'],
        source=secret_source,
        json_key=item.get('JsonKey')
    )


def _tuple_or_none(values: Optional[Sequence[str]]) -> Optional[Tuple[str, ...]]:
    return tuple(values) if values else None


def container_spec_from_config(container: Dict[str, Any],
                               log_group_name: Optional[str] = None) -> ContainerSpec:
    """
    Build the container spec from the `Container` configuration section.

    Args:
        container: The `Container` section
        log_group_name: Log group the container logs to, if any

    Returns:
        The container spec

    Raises:
        StackConfigurationError: If a required key is missing or a value is malformed
    """
    try:
        name = container['Name']
        image = container['Image']
        port = container['Port']
    except KeyError as e:
        raise StackConfigurationError(
            f"Container configuration is missing required key {e}",
            config_key="Container"
        ) from e

    environment = tuple(
        EnvironmentVariable(name=key, value=str(value))
        for key, value in (container.get('Environment') or {}).items()
    )
    secrets = tuple(_secret_ref(item) for item in container.get('Secrets') or [])

    return ContainerSpec(
        name=name,
        image=image,
        cpu=container.get('Cpu'),
        memory=container.get('Memory'),
        memory_reservation=container.get('MemoryReservation'),
        port_mappings=(PortMapping(container_port=port),),
        environment=environment,
        secrets=secrets,
        log_group_name=log_group_name,
        repository_credentials_arn=container.get('RepositoryCredentialsArn'),
        command=_tuple_or_none(container.get('Command')),
        entry_point=_tuple_or_none(container.get('EntryPoint')),
        working_directory=container.get('WorkingDirectory')
    )


def build_service_spec(config: Config,
                       listener_arn: str,
                       alb_security_group_id: str,
                       log_group_name: Optional[str] = None,
                       cluster: Optional[str] = None,
                       rule_actions: Sequence[ListenerAction] = ()) -> ServiceSpec:
    """
    Build the service spec for the configured service.

    The load balancer collaborators are created by the caller and passed in,
    usually as CDK tokens.

    Args:
        config: Deployment configuration
        listener_arn: Listener the service's rule is attached to
        alb_security_group_id: Security group of the load balancer
        log_group_name: Application log group, if any
        cluster: ECS cluster name or ARN, the default cluster when omitted
        rule_actions: Actions performed before forwarding, eg OIDC authentication

    Returns:
        The service spec, not validated yet

    Raises:
        StackConfigurationError: If the configuration is incomplete
    """
    container = container_spec_from_config(config.get_container_config(), log_group_name)
    alb_config = config.get_alb_config()

    alb_integration = AlbIntegrationSpec(
        listener_arn=listener_arn,
        security_group_id=alb_security_group_id,
        port_mapping=LoadBalancerPortMapping(
            container_name=container.name,
            container_port=container.port_mappings[0].container_port
        ),
        rule_actions=tuple(rule_actions),
        rule_priority=alb_config.get('ListenerRulePriority'),
        health_check=TargetGroupHealthCheck(
            path=alb_config.get('HealthCheckPath', DEFAULT_HEALTH_CHECK_PATH)
        )
    )

    subnet_ids: List[str] = config.get_optional('ServiceSubnetIds', [])

    spec = ServiceSpec(
        name=config.get_validated_project_name(),
        stage=config.get_stage(),
        containers=(container,),
        vpc_id=config.get('VpcId'),
        subnet_ids=tuple(subnet_ids),
        cluster=cluster,
        cpu=config.get_optional('Cpu'),
        memory=config.get_optional('Memory'),
        task_policy=config.get_optional('TaskPolicy'),
        alb_integration=alb_integration,
        desired_count=config.get_optional('DesiredCount', DEFAULT_DESIRED_COUNT)
    )

    logger.debug(
        f"Service spec for '{spec.name}' ({spec.stage}): image {container.image}, "
        f"{len(container.secrets)} secret(s), {len(rule_actions)} pre-forward action(s)"
    )
    return spec
