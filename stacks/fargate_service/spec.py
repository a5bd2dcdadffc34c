"""
Declarative input types for a Fargate service.

Every type here is a frozen dataclass owned by the caller. The compiler reads
them, applies defaults on a copy and never mutates the original values.
Identifiers (VPC id, subnet ids, ARNs) are opaque strings and may be CDK
tokens; they are never dereferenced.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .constants import DEFAULT_DESIRED_COUNT


class SecretSource(Enum):
    """Where a secret injected into a container lives."""
    SECRETS_MANAGER = "secrets-manager"
    PARAMETER_STORE = "parameter-store"


@dataclass(frozen=True)
class SecretRef:
    """
    A secret exposed to a container as an environment variable.

    Attributes:
        name: Name of the environment variable holding the secret value, eg `MY_PASSWORD`
        value_from_arn: Full ARN of the Secrets Manager secret or Parameter Store parameter
        source: Which service holds the secret
        json_key: Secrets Manager only, inject a single JSON property of the secret
    """
    name: str
    value_from_arn: str
    source: SecretSource
    json_key: Optional[str] = None


@dataclass(frozen=True)
class EnvironmentVariable:
    """Plain environment variable passed to a container."""
    name: str
    value: str


@dataclass(frozen=True)
class PortMapping:
    """Port exposed by a container."""
    container_port: int
    host_port: Optional[int] = None
    protocol: str = "tcp"


@dataclass(frozen=True)
class ContainerSpec:
    """
    One container of the task.

    Fields that are not modelled explicitly (ulimits, mountPoints, dockerLabels, ...)
    go into `extra_options` using the ECS API casing and are passed through unchanged.
    """
    name: str
    image: str
    cpu: Optional[int] = None
    memory: Optional[int] = None
    memory_reservation: Optional[int] = None
    essential: bool = True
    port_mappings: Tuple[PortMapping, ...] = ()
    environment: Tuple[EnvironmentVariable, ...] = ()
    secrets: Tuple[SecretRef, ...] = ()
    # Name of an existing CloudWatch log group to stream this container's logs to
    log_group_name: Optional[str] = None
    # Secrets Manager secret holding credentials for a private registry
    repository_credentials_arn: Optional[str] = None
    health_check: Optional[Dict[str, Any]] = None
    command: Optional[Tuple[str, ...]] = None
    entry_point: Optional[Tuple[str, ...]] = None
    working_directory: Optional[str] = None
    extra_options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TargetGroupHealthCheck:
    """Health check performed by the load balancer against the service's targets."""
    path: str = "/"
    interval_seconds: int = 30
    timeout_seconds: int = 10
    healthy_threshold_count: int = 2
    unhealthy_threshold_count: int = 2
    matcher: str = "200"
    port: Optional[str] = None
    protocol: Optional[str] = None


@dataclass(frozen=True)
class ListenerAction:
    """
    A listener rule action performed before requests are forwarded to the service.

    `properties` uses the CloudFormation casing of `AWS::ElasticLoadBalancingV2::ListenerRule`
    actions, eg `{"AuthenticateOidcConfig": {...}}`. The `Order` is assigned by the compiler.
    """
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def authenticate_oidc(cls,
                          issuer: str,
                          authorization_endpoint: str,
                          token_endpoint: str,
                          user_info_endpoint: str,
                          client_id: str,
                          client_secret: str,
                          scope: Optional[str] = None,
                          session_timeout: Optional[int] = None,
                          on_unauthenticated_request: str = "authenticate") -> "ListenerAction":
        """
        Build an `authenticate-oidc` action.

        Args:
            issuer: OIDC issuer identifier
            authorization_endpoint: Authorization endpoint of the identity provider
            token_endpoint: Token endpoint of the identity provider
            user_info_endpoint: User info endpoint of the identity provider
            client_id: OAuth 2.0 client identifier
            client_secret: OAuth 2.0 client secret
            scope: Optional set of user claims to request
            session_timeout: Optional session cookie lifetime in seconds
            on_unauthenticated_request: Behaviour for unauthenticated requests

        Returns:
            The listener action
        """
        config: Dict[str, Any] = {
            "Issuer": issuer,
            "AuthorizationEndpoint": authorization_endpoint,
            "TokenEndpoint": token_endpoint,
            "UserInfoEndpoint": user_info_endpoint,
            "ClientId": client_id,
            "ClientSecret": client_secret,
            "OnUnauthenticatedRequest": on_unauthenticated_request,
        }
        if scope:
            config["Scope"] = scope
        if session_timeout is not None:
            config["SessionTimeout"] = session_timeout

        return cls(type="authenticate-oidc", properties={"AuthenticateOidcConfig": config})


@dataclass(frozen=True)
class LoadBalancerPortMapping:
    """Which port on which container (by name) the load balancer routes traffic to."""
    container_name: str
    container_port: int


@dataclass(frozen=True)
class AlbIntegrationSpec:
    """
    Configuration needed to put the service behind an existing Application Load Balancer.

    Attributes:
        listener_arn: Listener the service's rule is attached to
        security_group_id: Security group of the load balancer, the only allowed ingress source
        port_mapping: Container and port receiving the traffic
        rule_actions: Actions performed before the final forward, eg authentication
        rule_priority: Listener rule priority between 1 and 50,000. Left unset the rule
            takes the next available priority, which is only safe on a listener with no
            conflicting rules
        health_check: Target group health check, defaults apply when omitted
    """
    listener_arn: str
    security_group_id: str
    port_mapping: LoadBalancerPortMapping
    rule_actions: Tuple[ListenerAction, ...] = ()
    rule_priority: Optional[int] = None
    health_check: Optional[TargetGroupHealthCheck] = None


@dataclass(frozen=True)
class ServiceSpec:
    """
    Declarative description of a Fargate service.

    `cpu`, `memory` and `namespace` are optional here; the validator returns a copy
    with the defaults applied.
    """
    name: str
    containers: Tuple[ContainerSpec, ...]
    vpc_id: str
    subnet_ids: Tuple[str, ...]
    cluster: Optional[str] = None
    cpu: Optional[int] = None
    memory: Optional[int] = None
    namespace: Optional[str] = None
    stage: Optional[str] = None
    task_policy: Optional[Dict[str, Any]] = None
    alb_integration: Optional[AlbIntegrationSpec] = None
    desired_count: int = DEFAULT_DESIRED_COUNT


@dataclass(frozen=True)
class DeploymentContext:
    """Account and region the service is deployed to. Values may be CDK tokens."""
    region: str
    account_id: str
    partition: str = "aws"
