import yaml
import re
from yaml.loader import SafeLoader
from typing import Dict, List, Optional, Any


class ProjectNameValidationError(Exception):
    """Raised when ProjectName validation fails."""
    pass


class StageValidationError(Exception):
    """Raised when Stage validation fails."""
    pass


class Config:

    _environment = 'development'
    data = {}

    def __init__(self, environment) -> None:
        self._environment = environment
        self.load()
        self._validate_project_name()
        self._validate_stage()

    def load(self) -> dict:
        with open(f'config/{self._environment}.yaml', encoding='utf-8') as f:
            self.data = yaml.load(f, Loader=SafeLoader) or {}
        return self.data

    def get(self, key):
        return self.data[key]

    @property
    def environment(self) -> str:
        return self._environment

    def _validate_project_name(self) -> None:
        """
        Validate ProjectName against the naming constraints of the service resources.

        ProjectName is the service name and the first part of its namespace
        (`<ProjectName>-<Stage>`), which prefixes every derived resource name.

        Raises:
            ProjectNameValidationError: If ProjectName doesn't meet requirements
        """
        project_name = self.data.get('ProjectName')

        if not project_name:
            raise ProjectNameValidationError("ProjectName is required in configuration")

        if not isinstance(project_name, str):
            raise ProjectNameValidationError("ProjectName must be a string")

        project_name = project_name.strip()

        # 1. LENGTH CONSTRAINTS
        # The namespace is capped at 22 chars so the target group name stays within 32 chars.
        # Leave room for a short stage suffix, eg "-dev"
        MAX_LENGTH = 16

        if len(project_name) > MAX_LENGTH:
            raise ProjectNameValidationError(
                f"ProjectName must be {MAX_LENGTH} characters or less. "
                f"Current length: {len(project_name)}. "
                f"Constraint: target group names (32 chars) - suffix and stage"
            )

        MIN_LENGTH = 3

        if len(project_name) < MIN_LENGTH:
            raise ProjectNameValidationError(
                f"ProjectName must be at least {MIN_LENGTH} characters long. "
                f"Current length: {len(project_name)}"
            )

        # 2. CHARACTER PATTERN (CloudFormation stack + ECS + target group naming)
        combined_pattern = r'^[a-z]([a-z0-9-]*[a-z0-9])?$'

        if not re.match(combined_pattern, project_name):
            raise ProjectNameValidationError(
                f"ProjectName '{project_name}' contains invalid characters. "
                f"Must use only lowercase letters (a-z), numbers (0-9), and hyphens (-). "
                f"Must start with a letter and end with a letter or number"
            )

        # 3. CONSECUTIVE HYPHENS CHECK
        if '--' in project_name:
            raise ProjectNameValidationError(
                f"ProjectName '{project_name}' contains consecutive hyphens"
            )

    def _validate_stage(self) -> None:
        """
        Validate Stage, the second part of the namespace.

        Raises:
            StageValidationError: If Stage has characters resource names don't allow
        """
        stage = str(self.get_stage())

        if not re.match(r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?$', stage):
            raise StageValidationError(
                f"Stage '{stage}' contains invalid characters. "
                f"Must use only lowercase letters (a-z), numbers (0-9), and hyphens (-), "
                f"starting and ending with a letter or number"
            )

    def get_validated_project_name(self) -> str:
        """
        Get the validated project name.

        Returns:
            Validated project name

        Raises:
            ProjectNameValidationError: If validation fails
        """
        self._validate_project_name()
        return self.data['ProjectName'].strip()

    def get_optional(self, key: str, default: Any = None) -> Any:
        """Get a configuration value, or the default when it is missing or empty."""
        value = self.data.get(key)
        return default if value is None else value

    def get_stage(self) -> str:
        """Stage used in the service namespace, defaults to the environment name."""
        return self.get_optional('Stage', self._environment)

    def get_container_config(self) -> Dict[str, Any]:
        """Get the container configuration section."""
        return self.get('Container')

    def get_alb_config(self) -> Dict[str, Any]:
        """Get the load balancer configuration section."""
        return self.get_optional('LoadBalancer', {})

    def get_oidc_config(self) -> Optional[Dict[str, Any]]:
        """Get the OIDC authentication section, None when authentication is disabled."""
        return self.get_optional('OidcAuthentication')

    def get_ingress_rules(self) -> List[Dict[str, Any]]:
        """Get peer security groups (eg databases) the service should be allowed into."""
        return self.get_optional('SecurityGroupIngressRules', [])

    def get_app_log_retention_days(self) -> int:
        """Get the application log retention in days."""
        return int(self.get_optional('AppLogRetention', 7))
