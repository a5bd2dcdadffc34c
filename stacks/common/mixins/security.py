"""Security group mixin for CDK stacks."""

from typing import List, Optional

from aws_cdk import aws_ec2 as ec2

from ..constants import HTTP_PORT, HTTPS_PORT
from ..validators import ConfigValidator


class SecurityGroupMixin:
    """
    Mixin class providing security group functionality.

    This mixin provides methods for creating and managing security groups
    with proper validation and best practices.
    """

    def create_web_security_group(self,
                                  name: str,
                                  vpc: ec2.IVpc,
                                  https_enabled: bool = False,
                                  allowed_cidrs: Optional[List[str]] = None,
                                  description: Optional[str] = None) -> ec2.SecurityGroup:
        """
        Create a security group for an internet-facing load balancer.

        Outbound traffic is closed; callers open egress to their targets explicitly.

        Args:
            name: Name for the security group
            vpc: VPC to create the security group in
            https_enabled: Also allow HTTPS
            allowed_cidrs: List of CIDR blocks to allow HTTP/HTTPS from
            description: Optional description for the security group

        Returns:
            The created security group
        """
        ConfigValidator.validate_resource_name(name)

        security_group = ec2.SecurityGroup(
            self,
            f"{name}-web-security-group",
            vpc=vpc,
            description=description or f"Web security group for {name}",
            allow_all_outbound=False
        )

        # Default to allowing from anywhere if no CIDRs specified
        source_cidrs = allowed_cidrs or ["0.0.0.0/0"]

        for cidr in source_cidrs:
            security_group.add_ingress_rule(
                peer=ec2.Peer.ipv4(cidr),
                connection=ec2.Port.tcp(HTTP_PORT),
                description=f"Allow HTTP from {cidr}"
            )

            if https_enabled:
                security_group.add_ingress_rule(
                    peer=ec2.Peer.ipv4(cidr),
                    connection=ec2.Port.tcp(HTTPS_PORT),
                    description=f"Allow HTTPS from {cidr}"
                )

        return security_group

    def allow_egress_to(self,
                        name: str,
                        security_group: ec2.ISecurityGroup,
                        destination_security_group_id: str,
                        port: int) -> ec2.CfnSecurityGroupEgress:
        """
        Open egress from a security group to another one on a single TCP port.

        Args:
            name: Identifier of the rule construct
            security_group: Security group the rule is added to
            destination_security_group_id: Security group receiving the traffic
            port: Destination port

        Returns:
            The egress rule
        """
        ConfigValidator.validate_port_range(port)

        return ec2.CfnSecurityGroupEgress(
            self,
            f"{name}-egress",
            group_id=security_group.security_group_id,
            ip_protocol="tcp",
            from_port=port,
            to_port=port,
            destination_security_group_id=destination_security_group_id,
            description=f"Allow traffic to port {port}"
        )

    def allow_ingress_from(self,
                           name: str,
                           peer_security_group_id: str,
                           source_security_group_id: str,
                           port: int) -> ec2.CfnSecurityGroupIngress:
        """
        Allow a source security group into an existing peer security group, eg a database.

        Args:
            name: Identifier of the rule construct
            peer_security_group_id: Existing security group the rule is added to
            source_security_group_id: Security group allowed in
            port: Port on the peer

        Returns:
            The ingress rule
        """
        ConfigValidator.validate_port_range(port)

        return ec2.CfnSecurityGroupIngress(
            self,
            f"{name}-ingress",
            group_id=peer_security_group_id,
            ip_protocol="tcp",
            from_port=port,
            to_port=port,
            source_security_group_id=source_security_group_id,
            description=f"Allow access on port {port} from {name}"
        )
