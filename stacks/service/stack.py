"""
Service stack.

Deploys a containerised web application on Fargate behind an internet-facing
Application Load Balancer. The load balancer, listener, cluster and application
log group live in this stack; the service itself, its roles, security group,
target group and listener rule are compiled by `FargateServiceConstruct`.
"""

import logging
from typing import Any, Dict, List, Optional

import aws_cdk as cdk
from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
)
from constructs import Construct

from helper.config import Config
from stacks.common.base import BaseStack
from stacks.common.mixins import SecurityGroupMixin, LoadBalancerLoggingMixin
from stacks.common.exceptions import StackConfigurationError
from stacks.common.validators import ConfigValidator
from stacks.common.constants import (
    HTTP_PORT,
    HTTPS_PORT,
    DEFAULT_LOAD_BALANCER_SUFFIX,
    DEFAULT_ALB_IDLE_TIMEOUT,
    DEFAULT_NOT_FOUND_MESSAGE,
    DEFAULT_ECS_CLUSTER_SUFFIX,
    DEFAULT_OIDC_SCOPE,
    DEFAULT_OIDC_SESSION_TIMEOUT
)
from stacks.fargate_service import FargateServiceConstruct, ListenerAction
from .spec_loader import build_service_spec

logger = logging.getLogger(__name__)

OIDC_REQUIRED_KEYS = [
    'Issuer',
    'AuthorizationEndpoint',
    'TokenEndpoint',
    'UserInfoEndpoint',
    'ClientId',
    'ClientSecretArn'
]


class ServiceStack(BaseStack, SecurityGroupMixin, LoadBalancerLoggingMixin):
    """
    Stack running one configured service.

    Creates:
    - ECS cluster, unless `ClusterName` names an existing one
    - Internet-facing ALB answering 404 to unmatched requests
    - Application log group
    - The Fargate service, routed to by a catch-all listener rule
    - Ingress into peer security groups, eg databases the service connects to
    """

    def __init__(self,
                 scope: Construct,
                 construct_id: str,
                 config: Config,
                 **kwargs) -> None:
        """
        Initialize the service stack.

        Args:
            scope: CDK scope
            construct_id: Unique identifier for this construct
            config: Configuration object
            **kwargs: Additional keyword arguments for Stack

        Raises:
            StackConfigurationError: If configuration is invalid
            ServiceSpecValidationError: If the resulting service spec is invalid
        """
        super().__init__(scope, construct_id, config, **kwargs)

        self.namespace = f"{config.get_validated_project_name()}-{config.get_stage()}"
        self.alb_config: Dict[str, Any] = config.get_alb_config()

        self.vpc = ec2.Vpc.from_lookup(
            self,
            "vpc",
            vpc_id=self.get_required_config('VpcId')
        )

        self.cluster_name = self._create_cluster()
        self.load_balancer, self.alb_security_group = self._create_load_balancer()
        self.listener = self._create_listener()

        if self.alb_config.get('LogBucket'):
            self.configure_alb_logging(
                self.load_balancer,
                self.alb_config['LogBucket'],
                self.alb_config.get('LogBucketPrefix')
            )

        self.app_log_group = self.create_log_group(
            "app",
            retention_days=config.get_app_log_retention_days(),
            log_group_name=f"/ecs/{self.namespace}"
        )

        spec = build_service_spec(
            config,
            listener_arn=self.listener.listener_arn,
            alb_security_group_id=self.alb_security_group.security_group_id,
            log_group_name=self.app_log_group.log_group_name,
            cluster=self.cluster_name,
            rule_actions=self._create_rule_actions()
        )

        self.service = FargateServiceConstruct(self, "service", spec=spec)

        container_port = spec.alb_integration.port_mapping.container_port
        self.allow_egress_to(
            f"{self.namespace}-alb-to-service",
            self.alb_security_group,
            self.service.security_group_id,
            container_port
        )

        self._create_peer_ingress_rules()
        self.add_common_tags(self)
        self._create_outputs()

    def _create_cluster(self) -> str:
        """Return the cluster the service runs in, creating one when none is configured."""
        cluster_name = self.get_optional_config('ClusterName')
        if cluster_name:
            logger.info(f"Using existing ECS cluster '{cluster_name}'")
            return cluster_name

        self.cluster = ecs.Cluster(
            self,
            "cluster",
            vpc=self.vpc,
            cluster_name=f"{self.namespace}-{DEFAULT_ECS_CLUSTER_SUFFIX}",
            container_insights_v2=ecs.ContainerInsights.ENABLED
        )
        return self.cluster.cluster_arn

    def _create_load_balancer(self):
        """Create the internet-facing load balancer and its security group."""
        subnet_ids: List[str] = self.alb_config.get('SubnetIds') or []
        if not subnet_ids:
            raise StackConfigurationError(
                "LoadBalancer.SubnetIds must list at least one subnet",
                config_key="LoadBalancer.SubnetIds"
            )

        alb_name = f"{self.namespace}-{DEFAULT_LOAD_BALANCER_SUFFIX}"
        security_group = self.create_web_security_group(
            alb_name,
            self.vpc,
            https_enabled=self._https_enabled,
            description=f"Security group for {self.namespace} ALB"
        )

        subnets = [
            ec2.Subnet.from_subnet_id(self, f"alb-subnet-{index}", subnet_id)
            for index, subnet_id in enumerate(subnet_ids)
        ]

        load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "alb",
            vpc=self.vpc,
            internet_facing=True,
            security_group=security_group,
            vpc_subnets=ec2.SubnetSelection(subnets=subnets),
            load_balancer_name=alb_name,
            idle_timeout=cdk.Duration.seconds(DEFAULT_ALB_IDLE_TIMEOUT),
            drop_invalid_header_fields=True
        )
        return load_balancer, security_group

    @property
    def _https_enabled(self) -> bool:
        return bool(self.alb_config.get('CertificateArn'))

    def _create_listener(self) -> elbv2.ApplicationListener:
        """
        Create the listener the service's rule attaches to.

        Requests no rule matches get a plain 404. With a certificate the listener
        serves HTTPS and plain HTTP is redirected to it.
        """
        not_found = elbv2.ListenerAction.fixed_response(
            404,
            content_type="text/plain",
            message_body=DEFAULT_NOT_FOUND_MESSAGE
        )

        if not self._https_enabled:
            return self.load_balancer.add_listener(
                "http-listener",
                port=HTTP_PORT,
                protocol=elbv2.ApplicationProtocol.HTTP,
                default_action=not_found,
                open=False
            )

        listener = self.load_balancer.add_listener(
            "https-listener",
            port=HTTPS_PORT,
            protocol=elbv2.ApplicationProtocol.HTTPS,
            certificates=[elbv2.ListenerCertificate.from_arn(self.alb_config['CertificateArn'])],
            ssl_policy=elbv2.SslPolicy.RECOMMENDED_TLS,
            default_action=not_found,
            open=False
        )
        self.load_balancer.add_redirect(
            source_port=HTTP_PORT,
            target_port=HTTPS_PORT,
            open=False
        )
        return listener

    def _create_rule_actions(self) -> List[ListenerAction]:
        """
        Build the actions run before requests reach the service.

        Raises:
            StackConfigurationError: If OIDC is configured incompletely or without HTTPS
        """
        oidc = self.config.get_oidc_config()
        if not oidc:
            return []

        missing_keys = [key for key in OIDC_REQUIRED_KEYS if not oidc.get(key)]
        if missing_keys:
            raise StackConfigurationError(
                f"OidcAuthentication is missing required keys: {', '.join(missing_keys)}",
                config_key="OidcAuthentication"
            )

        if not self._https_enabled:
            raise StackConfigurationError(
                "OidcAuthentication requires an HTTPS listener, set LoadBalancer.CertificateArn",
                config_key="OidcAuthentication"
            )

        client_secret = cdk.SecretValue.secrets_manager(
            oidc['ClientSecretArn'],
            json_field=oidc.get('ClientSecretJsonKey')
        ).unsafe_unwrap()

        # The load balancer exchanges tokens with the identity provider itself
        self.alb_security_group.add_egress_rule(
            peer=ec2.Peer.any_ipv4(),
            connection=ec2.Port.tcp(HTTPS_PORT),
            description="Allow OIDC token exchange with the identity provider"
        )

        logger.info(f"OIDC authentication enabled for '{self.namespace}' with issuer {oidc['Issuer']}")
        return [
            ListenerAction.authenticate_oidc(
                issuer=oidc['Issuer'],
                authorization_endpoint=oidc['AuthorizationEndpoint'],
                token_endpoint=oidc['TokenEndpoint'],
                user_info_endpoint=oidc['UserInfoEndpoint'],
                client_id=oidc['ClientId'],
                client_secret=client_secret,
                scope=oidc.get('Scope', DEFAULT_OIDC_SCOPE),
                session_timeout=oidc.get('SessionTimeout', DEFAULT_OIDC_SESSION_TIMEOUT)
            )
        ]

    def _create_peer_ingress_rules(self) -> None:
        """Allow the service into the configured peer security groups."""
        for index, rule in enumerate(self.config.get_ingress_rules()):
            peer_security_group_id: Optional[str] = rule.get('SecurityGroupId')
            ConfigValidator.validate_security_group_id(peer_security_group_id)

            self.allow_ingress_from(
                f"{self.namespace}-peer-{index}",
                peer_security_group_id=peer_security_group_id,
                source_security_group_id=self.service.security_group_id,
                port=rule.get('Port')
            )

    def _create_outputs(self) -> None:
        scheme = "https" if self._https_enabled else "http"

        cdk.CfnOutput(
            self,
            "LoadBalancerDnsName",
            value=self.load_balancer.load_balancer_dns_name,
            description="DNS name of the load balancer"
        )
        cdk.CfnOutput(
            self,
            "ServiceUrl",
            value=f"{scheme}://{self.load_balancer.load_balancer_dns_name}",
            description=f"URL of the {self.namespace} service"
        )
        cdk.CfnOutput(
            self,
            "ListenerArn",
            value=self.listener.listener_arn,
            description="ARN of the load balancer listener"
        )
        cdk.CfnOutput(
            self,
            "AppLogGroupName",
            value=self.app_log_group.log_group_name,
            description="Application log group"
        )
