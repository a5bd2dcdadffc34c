"""
Constants used across CDK stacks.
"""

# Load Balancer
HTTP_PORT = 80
HTTPS_PORT = 443
DEFAULT_LOAD_BALANCER_SUFFIX = "alb"
DEFAULT_ALB_IDLE_TIMEOUT = 60
DEFAULT_NOT_FOUND_MESSAGE = "Not Found"

# Cluster
DEFAULT_ECS_CLUSTER_SUFFIX = "cluster"

# Logging
DEFAULT_ALB_LOG_PREFIX = "alb"

# Health Check
DEFAULT_HEALTH_CHECK_PATH = "/"

# OIDC authentication
DEFAULT_OIDC_SCOPE = "openid"
DEFAULT_OIDC_SESSION_TIMEOUT = 604800  # 7 days, the ALB default
