"""
CDK construct rendering a compiled Fargate service.

Each descriptor becomes the typed L1 class of its resource type, so aws-cdk-lib
checks the properties and aspects such as cdk-nag inspect the resources.
"""

import logging
import re
from typing import Any, Dict, Optional

import aws_cdk as cdk
from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
)
from constructs import Construct

from stacks.common.exceptions import ResourceCreationError

from .compiler import compile_service
from .constants import (
    LISTENER_RULE_TYPE,
    ROLE_TYPE,
    SECURITY_GROUP_TYPE,
    SERVICE_TYPE,
    TARGET_GROUP_TYPE,
    TASK_DEFINITION_TYPE,
)
from .load_balancer import derive_rule_priority
from .resources import ResourceDescriptor, ServiceGraph, logical_id_for
from .spec import DeploymentContext, ServiceSpec

logger = logging.getLogger(__name__)

L1_CLASSES = {
    ROLE_TYPE: iam.CfnRole,
    SECURITY_GROUP_TYPE: ec2.CfnSecurityGroup,
    TARGET_GROUP_TYPE: elbv2.CfnTargetGroup,
    LISTENER_RULE_TYPE: elbv2.CfnListenerRule,
    TASK_DEFINITION_TYPE: ecs.CfnTaskDefinition,
    SERVICE_TYPE: ecs.CfnService,
}

# Values passed through untouched: JSON documents and maps with user supplied keys
FREE_FORM_PROPERTIES = frozenset({
    "AssumeRolePolicyDocument",
    "PolicyDocument",
    "Options",
    "DockerLabels",
    "AuthenticationRequestExtraParams",
})


def _struct_value(value: Any) -> Any:
    """Nested property types take their fields in camelCase, eg `CidrIp` as `cidrIp`."""
    if isinstance(value, list):
        return [_struct_value(item) for item in value]
    if isinstance(value, dict):
        return {
            key[0].lower() + key[1:]: item if key in FREE_FORM_PROPERTIES else _struct_value(item)
            for key, item in value.items()
        }
    return value


def to_l1_props(properties: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert CloudFormation properties to keyword arguments of an L1 class.

    Args:
        properties: Properties in CloudFormation casing, references already resolved

    Returns:
        Keyword arguments, eg `{"VpcId": ...}` becomes `{"vpc_id": ...}`
    """
    converted = {}
    for key, value in properties.items():
        name = re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()
        converted[name] = value if key in FREE_FORM_PROPERTIES else _struct_value(value)
    return converted


class FargateServiceConstruct(Construct):
    """
    A Fargate service with its roles, security group and optional ALB routing.

    The spec is compiled into a resource graph first, so an invalid spec fails
    before anything is added to the construct tree. Each resource keeps the logical
    id derived from the service namespace, which keeps the template stable across
    synths.
    """

    def __init__(self,
                 scope: Construct,
                 construct_id: str,
                 spec: ServiceSpec,
                 context: Optional[DeploymentContext] = None,
                 **kwargs) -> None:
        """
        Initialize the construct.

        Args:
            scope: CDK scope
            construct_id: Unique identifier for this construct
            spec: Service spec
            context: Deployment account and region, defaults to the enclosing stack's
            **kwargs: Additional keyword arguments for Construct

        Raises:
            ServiceSpecValidationError: If the spec is invalid
            ResourceCreationError: If a compiled resource cannot be added
        """
        super().__init__(scope, construct_id, **kwargs)

        stack = cdk.Stack.of(self)
        if context is None:
            context = DeploymentContext(
                region=stack.region,
                account_id=stack.account,
                partition=stack.partition
            )

        self.graph: ServiceGraph = compile_service(spec, context)
        self.resources: Dict[str, cdk.CfnResource] = {}

        for descriptor in self.graph.resources:
            self.resources[descriptor.logical_id] = self._render(descriptor)

        for edge in self.graph.edges:
            # eg service after listener rule
            self.resources[edge.dependent].add_dependency(self.resources[edge.prerequisite])

        self.outputs: Dict[str, str] = {}
        for name, value in self.graph.outputs.items():
            self.outputs[name] = self._resolve(value)
            cdk.CfnOutput(
                self,
                name,
                value=self.outputs[name],
                description=f"{name} of the {self.graph.namespace} service"
            )

    def _render(self, descriptor: ResourceDescriptor) -> cdk.CfnResource:
        """Add one descriptor to the construct tree as its typed CloudFormation resource."""
        properties = descriptor.properties
        if descriptor.resource_type == LISTENER_RULE_TYPE and "Priority" not in properties:
            # CloudFormation requires a priority on every listener rule
            priority = derive_rule_priority(self.graph.namespace)
            logger.warning(
                f"No listener rule priority set for '{self.graph.namespace}', using derived priority {priority}"
            )
            properties = {**properties, "Priority": priority}

        resource_class = L1_CLASSES.get(descriptor.resource_type)
        if resource_class is None:
            raise ResourceCreationError(
                f"No CloudFormation class to render '{descriptor.logical_id}' with",
                resource_type=descriptor.resource_type
            )

        try:
            resource = resource_class(
                self,
                descriptor.logical_id,
                **to_l1_props(self._resolve_references(properties))
            )
            resource.override_logical_id(descriptor.logical_id)
        except Exception as e:
            raise ResourceCreationError(
                f"Failed to add '{descriptor.logical_id}' to the {self.graph.namespace} service: {str(e)}",
                resource_type=descriptor.resource_type
            ) from e

        logger.debug(f"Rendered {descriptor.resource_type} '{descriptor.logical_id}'")
        return resource

    def _resolve_references(self, value: Any) -> Any:
        """Replace `Ref` and `Fn::GetAtt` on rendered graph resources with CDK tokens."""
        if isinstance(value, list):
            return [self._resolve_references(item) for item in value]
        if isinstance(value, dict):
            if self._is_graph_reference(value):
                return self._resolve(value)
            return {key: self._resolve_references(item) for key, item in value.items()}
        return value

    def _is_graph_reference(self, value: Dict[str, Any]) -> bool:
        if len(value) != 1:
            return False
        if "Ref" in value:
            return value["Ref"] in self.resources
        if "Fn::GetAtt" in value:
            return value["Fn::GetAtt"][0] in self.resources
        return False

    def _resolve(self, value: Any) -> str:
        """Turn a `Ref` or `Fn::GetAtt` on a graph resource into a CDK token."""
        if "Ref" in value:
            return self.resources[value["Ref"]].ref
        logical_id, attribute = value["Fn::GetAtt"]
        return cdk.Token.as_string(self.resources[logical_id].get_att(attribute))

    def _first_of_type(self, resource_type: str) -> Optional[cdk.CfnResource]:
        for descriptor in self.graph.of_type(resource_type):
            return self.resources[descriptor.logical_id]
        return None

    @property
    def execution_role(self) -> iam.CfnRole:
        return self.resources[logical_id_for(self.graph.namespace, "ExecutionRole")]

    @property
    def task_role(self) -> iam.CfnRole:
        return self.resources[logical_id_for(self.graph.namespace, "TaskRole")]

    @property
    def security_group(self) -> ec2.CfnSecurityGroup:
        return self._first_of_type(SECURITY_GROUP_TYPE)

    @property
    def security_group_id(self) -> str:
        return self.security_group.attr_group_id

    @property
    def task_definition(self) -> ecs.CfnTaskDefinition:
        return self._first_of_type(TASK_DEFINITION_TYPE)

    @property
    def service(self) -> ecs.CfnService:
        return self._first_of_type(SERVICE_TYPE)

    @property
    def target_group(self) -> Optional[elbv2.CfnTargetGroup]:
        return self._first_of_type(TARGET_GROUP_TYPE)

    @property
    def listener_rule(self) -> Optional[elbv2.CfnListenerRule]:
        return self._first_of_type(LISTENER_RULE_TYPE)
