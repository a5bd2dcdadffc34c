"""Validation utilities for CDK stacks."""

import re

from .exceptions import ValidationError


class ConfigValidator:
    """Utility class for validating configuration parameters."""

    @staticmethod
    def validate_port_range(port: int) -> None:
        """
        Validate that port number is within valid range.

        Args:
            port: Port number to validate

        Raises:
            ValidationError: If port is outside valid range
        """
        if not isinstance(port, int) or not 1 <= port <= 65535:
            raise ValidationError(
                f"Port must be between 1 and 65535, got {port}",
                parameter_name="port",
                provided_value=str(port)
            )

    @staticmethod
    def validate_resource_name(name: str, max_length: int = 63) -> None:
        """
        Validate AWS resource name format.

        Args:
            name: Resource name to validate
            max_length: Maximum allowed length

        Raises:
            ValidationError: If name format is invalid
        """
        # Skip validation for CDK tokens (CloudFormation references)
        if isinstance(name, str) and '${Token[' in name:
            return

        if not name:
            raise ValidationError(
                "Resource name cannot be empty",
                parameter_name="name",
                provided_value=name
            )

        if len(name) > max_length:
            raise ValidationError(
                f"Resource name too long (max {max_length}): {name}",
                parameter_name="name",
                provided_value=name
            )

        # AWS resource names should contain only alphanumeric chars, hyphens, and underscores
        if not re.match(r'^[a-zA-Z0-9-_]+$', name):
            raise ValidationError(
                f"Invalid resource name format: {name}. "
                f"Only alphanumeric characters, hyphens, and underscores allowed",
                parameter_name="name",
                provided_value=name
            )

    @staticmethod
    def validate_security_group_id(group_id: str) -> None:
        """
        Validate security group id format.

        Args:
            group_id: Security group id to validate

        Raises:
            ValidationError: If the id format is invalid
        """
        if not isinstance(group_id, str) or not re.match(r'^sg-[0-9a-f]{8,17}$', group_id):
            raise ValidationError(
                f"Invalid security group id: {group_id}",
                parameter_name="security_group_id",
                provided_value=str(group_id)
            )
