"""
Derived resource descriptors.

A descriptor is a CloudFormation shaped description of one resource: a stable
logical id, the resource type and its properties. References between
descriptors are CloudFormation intrinsics (`Ref`, `Fn::GetAtt`) on logical ids,
so a graph can be rendered by any CloudFormation aware engine.
"""

import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .constants import ROLE_TYPE, SECURITY_GROUP_TYPE, POLICY_VERSION


def logical_id_for(namespace: str, suffix: str) -> str:
    """
    Derive a CloudFormation logical id from a namespace.

    Args:
        namespace: Service namespace, eg `pgweb-dev`
        suffix: Resource suffix, eg `ExecutionRole`

    Returns:
        Alphanumeric logical id, eg `PgwebDevExecutionRole`
    """
    words = [word for word in re.split(r'[^a-zA-Z0-9]+', namespace) if word]
    return "".join(word[0].upper() + word[1:] for word in words) + suffix


def name_suffix(namespace: str, length: int) -> str:
    """Stable hex suffix for physical names, derived from the namespace."""
    return hashlib.sha256(namespace.encode("utf-8")).hexdigest()[:length]


def ref(logical_id: str) -> Dict[str, Any]:
    return {"Ref": logical_id}


def get_att(logical_id: str, attribute: str) -> Dict[str, Any]:
    return {"Fn::GetAtt": [logical_id, attribute]}


def policy_document(statements: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"Version": POLICY_VERSION, "Statement": statements}


@dataclass(frozen=True)
class ResourceDescriptor:
    """One resource of the graph."""
    logical_id: str
    resource_type: str
    properties: Dict[str, Any]
    depends_on: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PolicyAttachment:
    """
    A policy attached to a role.

    Managed policies carry `managed_policy_arn`, inline policies carry `document`.
    """
    name: str
    document: Optional[Dict[str, Any]] = None
    managed_policy_arn: Optional[str] = None

    @property
    def is_managed(self) -> bool:
        return self.managed_policy_arn is not None


@dataclass(frozen=True)
class RoleDescriptor:
    """An IAM role and the policies attached to it."""
    logical_id: str
    description: str
    assume_role_policy: Dict[str, Any]
    policies: Tuple[PolicyAttachment, ...] = ()

    @property
    def policy_names(self) -> List[str]:
        return [policy.name for policy in self.policies]

    @property
    def inline_policies(self) -> List[PolicyAttachment]:
        return [policy for policy in self.policies if not policy.is_managed]

    def to_resource(self) -> ResourceDescriptor:
        properties: Dict[str, Any] = {
            "Description": self.description,
            "AssumeRolePolicyDocument": self.assume_role_policy,
        }
        managed = [policy.managed_policy_arn for policy in self.policies if policy.is_managed]
        if managed:
            properties["ManagedPolicyArns"] = managed
        inline = [
            {"PolicyName": policy.name, "PolicyDocument": policy.document}
            for policy in self.inline_policies
        ]
        if inline:
            properties["Policies"] = inline
        return ResourceDescriptor(self.logical_id, ROLE_TYPE, properties)


@dataclass(frozen=True)
class IdentityArtifacts:
    """Execution role and task role of a service."""
    execution_role: RoleDescriptor
    task_role: RoleDescriptor


@dataclass(frozen=True)
class SecurityGroupRule:
    """
    One security group rule.

    Exactly one of `cidr_ip` and `source_security_group_id` is set.
    """
    direction: str
    protocol: str
    from_port: Optional[int] = None
    to_port: Optional[int] = None
    cidr_ip: Optional[str] = None
    source_security_group_id: Optional[str] = None
    description: Optional[str] = None

    def to_properties(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {"IpProtocol": self.protocol}
        if self.from_port is not None:
            properties["FromPort"] = self.from_port
        if self.to_port is not None:
            properties["ToPort"] = self.to_port
        if self.cidr_ip is not None:
            properties["CidrIp"] = self.cidr_ip
        if self.source_security_group_id is not None:
            properties["SourceSecurityGroupId"] = self.source_security_group_id
        if self.description:
            properties["Description"] = self.description
        return properties


@dataclass(frozen=True)
class SecurityGroupDescriptor:
    """The service security group with its rules inline."""
    logical_id: str
    vpc_id: str
    description: str
    egress_rules: Tuple[SecurityGroupRule, ...] = ()
    ingress_rules: Tuple[SecurityGroupRule, ...] = ()

    @property
    def group_id(self) -> Dict[str, Any]:
        return get_att(self.logical_id, "GroupId")

    def to_resource(self) -> ResourceDescriptor:
        properties: Dict[str, Any] = {
            "GroupDescription": self.description,
            "VpcId": self.vpc_id,
            "SecurityGroupEgress": [rule.to_properties() for rule in self.egress_rules],
        }
        if self.ingress_rules:
            properties["SecurityGroupIngress"] = [rule.to_properties() for rule in self.ingress_rules]
        return ResourceDescriptor(self.logical_id, SECURITY_GROUP_TYPE, properties)


@dataclass(frozen=True)
class DependencyEdge:
    """`dependent` must not be created before `prerequisite` exists."""
    dependent: str
    prerequisite: str
    reason: str = ""


@dataclass(frozen=True)
class LoadBalancerBinding:
    """Registers a container port of the service with a target group."""
    container_name: str
    container_port: int
    target_group_logical_id: str

    def to_properties(self) -> Dict[str, Any]:
        return {
            "ContainerName": self.container_name,
            "ContainerPort": self.container_port,
            "TargetGroupArn": ref(self.target_group_logical_id),
        }


@dataclass(frozen=True)
class AlbArtifacts:
    """Everything needed to put a service behind a load balancer listener."""
    target_group: ResourceDescriptor
    listener_rule: ResourceDescriptor
    binding: LoadBalancerBinding
    dependency: DependencyEdge


@dataclass(frozen=True)
class ServiceGraph:
    """
    The complete, ordered resource graph of one service.

    Resources are listed in a valid creation order. `edges` holds the explicit
    ordering constraints that are not implied by references between resources.
    """
    namespace: str
    resources: Tuple[ResourceDescriptor, ...]
    edges: Tuple[DependencyEdge, ...] = ()
    outputs: Dict[str, Any] = field(default_factory=dict)

    def get(self, logical_id: str) -> ResourceDescriptor:
        for resource in self.resources:
            if resource.logical_id == logical_id:
                return resource
        raise KeyError(logical_id)

    def of_type(self, resource_type: str) -> List[ResourceDescriptor]:
        return [resource for resource in self.resources if resource.resource_type == resource_type]

    def to_template(self) -> Dict[str, Any]:
        """Render the graph as a standalone CloudFormation template fragment."""
        resources = {}
        for resource in self.resources:
            body: Dict[str, Any] = {"Type": resource.resource_type, "Properties": resource.properties}
            if resource.depends_on:
                body["DependsOn"] = list(resource.depends_on)
            resources[resource.logical_id] = body
        return {
            "Resources": resources,
            "Outputs": {name: {"Value": value} for name, value in self.outputs.items()},
        }
