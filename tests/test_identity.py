"""Unit tests for execution role and task role derivation."""

import pytest

from stacks.fargate_service import (
    ContainerSpec,
    SecretRef,
    SecretSource,
    ServiceSpecValidator,
    build_identity,
    derive_statements
)
from stacks.fargate_service.identity import log_group_arn, unique
from stacks.fargate_service.spec import DeploymentContext


DB_SECRET_ARN = "arn:aws:secretsmanager:ap-southeast-2:123456789012:secret:pgweb-db-AbCdEf"
API_SECRET_ARN = "arn:aws:secretsmanager:ap-southeast-2:123456789012:secret:pgweb-api-GhIjKl"
PARAMETER_ARN = "arn:aws:ssm:ap-southeast-2:123456789012:parameter/pgweb/session-key"
REGISTRY_ARN = "arn:aws:secretsmanager:ap-southeast-2:123456789012:secret:registry-MnOpQr"


def _statement(policy):
    statements = policy.document["Statement"]
    assert len(statements) == 1
    return statements[0]


class TestExecutionRole:
    """Test the execution role policies."""

    def test_baseline_only(self, make_spec, context):
        """Test that a spec using no optional feature gets only the managed baseline."""
        spec = ServiceSpecValidator.validate(make_spec())

        identity = build_identity(spec, context)

        assert identity.execution_role.policy_names == ["basic-ecs-policy"]
        assert identity.execution_role.inline_policies == []
        resource = identity.execution_role.to_resource()
        assert resource.properties["ManagedPolicyArns"] == [
            "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
        ]
        assert "Policies" not in resource.properties

    def test_trust_policy_allows_ecs_tasks(self, make_spec, context):
        identity = build_identity(ServiceSpecValidator.validate(make_spec()), context)

        for role in (identity.execution_role, identity.task_role):
            statement = role.assume_role_policy["Statement"][0]
            assert statement["Principal"] == {"Service": "ecs-tasks.amazonaws.com"}
            assert statement["Action"] == "sts:AssumeRole"

    def test_partition_in_managed_policy_arn(self, make_spec):
        context = DeploymentContext(region="cn-north-1", account_id="123456789012", partition="aws-cn")
        identity = build_identity(ServiceSpecValidator.validate(make_spec()), context)

        assert identity.execution_role.policies[0].managed_policy_arn.startswith("arn:aws-cn:iam::aws:policy/")

    def test_logical_ids(self, make_spec, context):
        identity = build_identity(ServiceSpecValidator.validate(make_spec()), context)

        assert identity.execution_role.logical_id == "PgwebDevExecutionRole"
        assert identity.task_role.logical_id == "PgwebDevTaskRole"


class TestDeriveStatements:
    """Test the feature driven inline policies."""

    def test_logs_scoped_to_union_of_log_groups(self, make_spec, context):
        containers = (
            ContainerSpec(name="app", image="nginx", log_group_name="/ecs/pgweb-dev"),
            ContainerSpec(name="sidecar", image="envoy", log_group_name="/ecs/pgweb-dev"),
            ContainerSpec(name="worker", image="worker", log_group_name="/ecs/worker"),
        )
        spec = ServiceSpecValidator.validate(make_spec(containers=containers))

        policies = derive_statements(spec, context)

        assert [policy.name for policy in policies] == ["logs-policy"]
        statement = _statement(policies[0])
        assert statement["Action"] == ["logs:CreateLogStream", "logs:PutLogEvents"]
        assert statement["Resource"] == [
            "arn:aws:logs:ap-southeast-2:123456789012:log-group:/ecs/pgweb-dev:*",
            "arn:aws:logs:ap-southeast-2:123456789012:log-group:/ecs/worker:*",
        ]

    def test_duplicate_secret_arns_yield_one_resource(self, make_spec, context):
        """Test that two JSON keys of one secret produce a single resource entry."""
        secrets = (
            SecretRef("DB_USER", DB_SECRET_ARN, SecretSource.SECRETS_MANAGER, json_key="username"),
            SecretRef("DB_PASSWORD", DB_SECRET_ARN, SecretSource.SECRETS_MANAGER, json_key="password"),
        )
        spec = ServiceSpecValidator.validate(
            make_spec(containers=(ContainerSpec(name="app", image="nginx", secrets=secrets),))
        )

        policies = derive_statements(spec, context)

        assert [policy.name for policy in policies] == ["secrets-manager-policy"]
        statement = _statement(policies[0])
        assert statement["Action"] == ["secretsmanager:GetSecretValue"]
        assert statement["Resource"] == [DB_SECRET_ARN]

    def test_secrets_split_by_source(self, make_spec, context):
        secrets = (
            SecretRef("DB_URL", DB_SECRET_ARN, SecretSource.SECRETS_MANAGER),
            SecretRef("SESSION_KEY", PARAMETER_ARN, SecretSource.PARAMETER_STORE),
            SecretRef("API_KEY", API_SECRET_ARN, SecretSource.SECRETS_MANAGER),
        )
        spec = ServiceSpecValidator.validate(
            make_spec(containers=(ContainerSpec(name="app", image="nginx", secrets=secrets),))
        )

        policies = {policy.name: policy for policy in derive_statements(spec, context)}

        assert _statement(policies["secrets-manager-policy"])["Resource"] == [DB_SECRET_ARN, API_SECRET_ARN]
        parameter_statement = _statement(policies["parameter-store-policy"])
        assert parameter_statement["Action"] == ["ssm:GetParameters"]
        assert parameter_statement["Resource"] == [PARAMETER_ARN]

    def test_repository_credentials_deduplicated(self, make_spec, context):
        containers = (
            ContainerSpec(name="app", image="private/app", repository_credentials_arn=REGISTRY_ARN),
            ContainerSpec(name="worker", image="private/worker", repository_credentials_arn=REGISTRY_ARN),
        )
        spec = ServiceSpecValidator.validate(make_spec(containers=containers))

        policies = derive_statements(spec, context)

        assert [policy.name for policy in policies] == ["repo-secret-policy"]
        assert _statement(policies[0])["Resource"] == [REGISTRY_ARN]

    def test_policy_order_is_fixed(self, make_spec, context):
        container = ContainerSpec(
            name="app",
            image="private/app",
            log_group_name="/ecs/pgweb-dev",
            repository_credentials_arn=REGISTRY_ARN,
            secrets=(
                SecretRef("SESSION_KEY", PARAMETER_ARN, SecretSource.PARAMETER_STORE),
                SecretRef("DB_URL", DB_SECRET_ARN, SecretSource.SECRETS_MANAGER),
            )
        )
        spec = ServiceSpecValidator.validate(make_spec(containers=(container,)))

        identity = build_identity(spec, context)

        assert identity.execution_role.policy_names == [
            "basic-ecs-policy",
            "logs-policy",
            "secrets-manager-policy",
            "parameter-store-policy",
            "repo-secret-policy",
        ]


class TestTaskRole:
    """Test the task role."""

    def test_no_policy_without_task_policy(self, make_spec, context):
        identity = build_identity(ServiceSpecValidator.validate(make_spec()), context)

        assert identity.task_role.policies == ()
        assert "Policies" not in identity.task_role.to_resource().properties

    def test_task_policy_attached_verbatim(self, make_spec, context):
        task_policy = {
            "Version": "2012-10-17",
            "Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "arn:aws:s3:::bucket/*"}],
        }
        spec = ServiceSpecValidator.validate(make_spec(task_policy=task_policy))

        identity = build_identity(spec, context)

        policies = identity.task_role.to_resource().properties["Policies"]
        assert policies == [{"PolicyName": "pgweb-dev-role-policy", "PolicyDocument": task_policy}]


class TestHelpers:
    """Test ARN helpers."""

    def test_unique_keeps_first_seen_order(self):
        assert unique(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    @pytest.mark.parametrize("name,expected", [
        ("/ecs/app", "arn:aws:logs:ap-southeast-2:123456789012:log-group:/ecs/app:*"),
        ("arn:aws:logs:us-east-1:111122223333:log-group:app", "arn:aws:logs:us-east-1:111122223333:log-group:app:*"),
        ("arn:aws:logs:us-east-1:111122223333:log-group:app:*", "arn:aws:logs:us-east-1:111122223333:log-group:app:*"),
    ])
    def test_log_group_arn(self, context, name, expected):
        assert log_group_arn(name, context) == expected
