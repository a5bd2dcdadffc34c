"""
Base classes and common patterns for CDK stacks.

Stacks derive from BaseStack to get configuration validation, standardized
log groups and common tagging.
"""

from typing import Dict, Any, Optional

import aws_cdk as cdk
from aws_cdk import (
    aws_logs as logs,
    Stack
)
from constructs import Construct

from helper.config import Config
from .exceptions import StackConfigurationError, ResourceCreationError
from .validators import ConfigValidator

# Map retention days to CDK enum values
RETENTION_MAPPING = {
    1: logs.RetentionDays.ONE_DAY,
    3: logs.RetentionDays.THREE_DAYS,
    5: logs.RetentionDays.FIVE_DAYS,
    7: logs.RetentionDays.ONE_WEEK,
    14: logs.RetentionDays.TWO_WEEKS,
    30: logs.RetentionDays.ONE_MONTH,
    60: logs.RetentionDays.TWO_MONTHS,
    90: logs.RetentionDays.THREE_MONTHS,
    120: logs.RetentionDays.FOUR_MONTHS,
    150: logs.RetentionDays.FIVE_MONTHS,
    180: logs.RetentionDays.SIX_MONTHS,
    365: logs.RetentionDays.ONE_YEAR,
    400: logs.RetentionDays.THIRTEEN_MONTHS,
    545: logs.RetentionDays.EIGHTEEN_MONTHS,
    731: logs.RetentionDays.TWO_YEARS,
    1827: logs.RetentionDays.FIVE_YEARS,
    3653: logs.RetentionDays.TEN_YEARS
}


class BaseStack(Stack):
    """
    Base stack class with common functionality and validation.

    This class provides:
    - Configuration validation
    - Standardized log groups
    - Common tags
    """

    def __init__(self,
                 scope: Construct,
                 construct_id: str,
                 config: Config,
                 **kwargs) -> None:
        """
        Initialize the base stack.

        Args:
            scope: CDK scope
            construct_id: Unique identifier for this construct
            config: Configuration object
            **kwargs: Additional keyword arguments for Stack

        Raises:
            StackConfigurationError: If configuration is invalid
        """
        super().__init__(scope, construct_id, **kwargs)
        self.config = config
        self._validate_config()

    def _validate_config(self) -> None:
        """
        Validate configuration parameters.

        Raises:
            StackConfigurationError: If configuration is invalid
        """
        if not isinstance(self.config, Config):
            raise StackConfigurationError(
                "Configuration must be a Config instance",
                config_key="config"
            )

    def create_log_group(self,
                         name: str,
                         retention_days: int = 30,
                         log_group_name: Optional[str] = None,
                         removal_policy: cdk.RemovalPolicy = cdk.RemovalPolicy.DESTROY) -> logs.LogGroup:
        """
        Create a standardized log group with validation.

        Args:
            name: Identifier of the log group construct
            retention_days: Log retention period in days, unknown values fall back to one month
            log_group_name: Explicit log group name, generated by CloudFormation when omitted
            removal_policy: Removal policy for the log group

        Returns:
            The created log group

        Raises:
            ResourceCreationError: If log group creation fails
        """
        try:
            ConfigValidator.validate_resource_name(name)

            retention = RETENTION_MAPPING.get(retention_days, logs.RetentionDays.ONE_MONTH)

            return logs.LogGroup(
                self,
                f"{name}-log-group",
                log_group_name=log_group_name,
                retention=retention,
                removal_policy=removal_policy
            )
        except Exception as e:
            raise ResourceCreationError(
                f"Failed to create log group '{name}': {str(e)}",
                resource_type="LogGroup"
            ) from e

    def get_required_config(self, key: str) -> Any:
        """
        Get a required configuration value with validation.

        Args:
            key: Configuration key to retrieve

        Returns:
            The configuration value

        Raises:
            StackConfigurationError: If key is missing
        """
        try:
            value = self.config.get(key)
        except KeyError as e:
            raise StackConfigurationError(
                f"Required configuration key '{key}' is missing",
                config_key=key
            ) from e
        if value is None:
            raise StackConfigurationError(
                f"Required configuration key '{key}' is missing",
                config_key=key
            )
        return value

    def get_optional_config(self, key: str, default_value: Any = None) -> Any:
        """
        Get an optional configuration value.

        Args:
            key: Configuration key to retrieve
            default_value: Default value if key is not found

        Returns:
            The configuration value or default
        """
        try:
            value = self.config.get(key)
        except KeyError:
            return default_value
        return default_value if value is None else value

    def add_common_tags(self, resource: Any, additional_tags: Dict[str, str] = None) -> None:
        """
        Add common tags to a resource.

        Args:
            resource: The resource to tag
            additional_tags: Additional tags to add
        """
        common_tags = {
            "Environment": self.get_optional_config("Environment", "unknown"),
            "Project": self.get_optional_config("ProjectName", "default-project"),
            "ManagedBy": "CDK"
        }

        if additional_tags:
            common_tags.update(additional_tags)

        for key, value in common_tags.items():
            cdk.Tags.of(resource).add(key, value)
