"""
Common CDK stack components and utilities.

Base stack, mixins, exceptions and validators shared by the stacks.
"""

# Import base classes
from .base import BaseStack

# Import mixins
from .mixins import (
    SecurityGroupMixin,
    LoadBalancerLoggingMixin
)

# Import exceptions
from .exceptions import (
    StackConfigurationError,
    ResourceCreationError,
    ValidationError,
    ServiceSpecValidationError
)

# Import validators
from .validators import ConfigValidator

# Import constants
from .constants import *

__all__ = [
    # Base classes
    "BaseStack",

    # Mixins
    "SecurityGroupMixin",
    "LoadBalancerLoggingMixin",

    # Exceptions
    "StackConfigurationError",
    "ResourceCreationError",
    "ValidationError",
    "ServiceSpecValidationError",

    # Validators
    "ConfigValidator",

    # Constants (imported from constants module)
]
