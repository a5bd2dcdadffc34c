"""
Constants for the Fargate service compiler.
"""

# Task defaults
DEFAULT_CPU = 256
DEFAULT_MEMORY = 512
DEFAULT_DESIRED_COUNT = 1

# Valid task level CPU and memory combinations
# https://docs.aws.amazon.com/AmazonECS/latest/developerguide/AWS_Fargate.html
VALID_CPU_MEMORY_COMBINATIONS = frozenset(
    # 0.25 vCPU - 0.5 GB, 1 GB, 2 GB
    [(256, memory) for memory in (512, 1024, 2048)]
    # 0.5 vCPU - 1 GB to 4 GB in 1 GB increments
    + [(512, memory) for memory in range(1024, 4096 + 1, 1024)]
    # 1 vCPU - 2 GB to 8 GB in 1 GB increments
    + [(1024, memory) for memory in range(2048, 8192 + 1, 1024)]
    # 2 vCPU - 4 GB to 16 GB in 1 GB increments
    + [(2048, memory) for memory in range(4096, 16384 + 1, 1024)]
    # 4 vCPU - 8 GB to 30 GB in 1 GB increments
    + [(4096, memory) for memory in range(8192, 30720 + 1, 1024)]
)

# Namespace - 22 chars + '-' + 6 char suffix + '-tg' keeps the target group name within
# the 32 character limit of Elastic Load Balancing
MAX_NAMESPACE_LENGTH = 22
# Target group names allow alphanumerics and hyphens, not at either end
NAMESPACE_PATTERN = r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$"
MAX_TARGET_GROUP_NAME_LENGTH = 32
NAME_SUFFIX_LENGTH = 6
FAMILY_SUFFIX_LENGTH = 8

# Listener rules
MIN_RULE_PRIORITY = 1
MAX_RULE_PRIORITY = 50000
CATCH_ALL_PATH_PATTERN = "/*"

# Ports
MIN_PORT = 1
MAX_PORT = 65535

# Target group
TARGET_GROUP_DEREGISTRATION_DELAY = 10
TARGET_GROUP_SLOW_START = 30
HEALTH_CHECK_GRACE_PERIOD = 60

# Service deployment
DEFAULT_MINIMUM_HEALTHY_PERCENT = 100
DEFAULT_MAXIMUM_PERCENT = 200

# IAM
POLICY_VERSION = "2012-10-17"
ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
ECS_TASK_EXECUTION_MANAGED_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"

BASIC_EXECUTION_POLICY_NAME = "basic-ecs-policy"
LOGS_POLICY_NAME = "logs-policy"
SECRETS_MANAGER_POLICY_NAME = "secrets-manager-policy"
PARAMETER_STORE_POLICY_NAME = "parameter-store-policy"
REPOSITORY_CREDENTIALS_POLICY_NAME = "repo-secret-policy"

LOGS_ACTIONS = ["logs:CreateLogStream", "logs:PutLogEvents"]
SECRETS_MANAGER_ACTIONS = ["secretsmanager:GetSecretValue"]
PARAMETER_STORE_ACTIONS = ["ssm:GetParameters"]

# Container logging
LOG_DRIVER = "awslogs"

# CloudFormation resource types
ROLE_TYPE = "AWS::IAM::Role"
SECURITY_GROUP_TYPE = "AWS::EC2::SecurityGroup"
TARGET_GROUP_TYPE = "AWS::ElasticLoadBalancingV2::TargetGroup"
LISTENER_RULE_TYPE = "AWS::ElasticLoadBalancingV2::ListenerRule"
TASK_DEFINITION_TYPE = "AWS::ECS::TaskDefinition"
SERVICE_TYPE = "AWS::ECS::Service"

# Graph outputs
OUTPUT_EXECUTION_ROLE_ARN = "ExecutionRoleArn"
OUTPUT_TASK_ROLE_ARN = "TaskRoleArn"
OUTPUT_SECURITY_GROUP_ID = "SecurityGroupId"
OUTPUT_TASK_DEFINITION_ARN = "TaskDefinitionArn"
OUTPUT_TARGET_GROUP_ARN = "TargetGroupArn"
OUTPUT_LISTENER_RULE_ARN = "ListenerRuleArn"
