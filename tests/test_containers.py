"""Unit tests for container definition compilation."""

from stacks.fargate_service import (
    ContainerSpec,
    EnvironmentVariable,
    PortMapping,
    SecretRef,
    SecretSource,
    compile_container_definitions
)
from stacks.fargate_service.containers import compile_container, secret_value_from, to_cloudformation


SECRET_ARN = "arn:aws:secretsmanager:ap-southeast-2:123456789012:secret:pgweb-db-AbCdEf"
PARAMETER_ARN = "arn:aws:ssm:ap-southeast-2:123456789012:parameter/pgweb/session-key"


class TestCompileContainer:
    """Test the ECS shape of a single container."""

    def test_minimal_container(self, context):
        definition = compile_container(ContainerSpec(name="app", image="nginx"), context)

        assert definition == {
            "name": "app",
            "image": "nginx",
            "essential": True,
            "portMappings": [],
            "environment": [],
            "secrets": [],
        }

    def test_limits_ports_and_environment(self, context):
        container = ContainerSpec(
            name="app",
            image="nginx",
            cpu=128,
            memory=256,
            memory_reservation=128,
            port_mappings=(PortMapping(container_port=8081), PortMapping(container_port=9000, host_port=9000, protocol="udp")),
            environment=(EnvironmentVariable("MODE", "readonly"),)
        )

        definition = compile_container(container, context)

        assert definition["cpu"] == 128
        assert definition["memory"] == 256
        assert definition["memoryReservation"] == 128
        assert definition["portMappings"] == [
            {"containerPort": 8081, "protocol": "tcp"},
            {"containerPort": 9000, "protocol": "udp", "hostPort": 9000},
        ]
        assert definition["environment"] == [{"name": "MODE", "value": "readonly"}]

    def test_log_configuration(self, context):
        container = ContainerSpec(name="app", image="nginx", log_group_name="/ecs/pgweb-dev")

        definition = compile_container(container, context)

        assert definition["logConfiguration"] == {
            "logDriver": "awslogs",
            "options": {
                "awslogs-group": "/ecs/pgweb-dev",
                "awslogs-region": "ap-southeast-2",
                "awslogs-stream-prefix": "app",
            },
        }

    def test_no_log_configuration_without_log_group(self, context):
        definition = compile_container(ContainerSpec(name="app", image="nginx"), context)
        assert "logConfiguration" not in definition

    def test_repository_credentials_and_overrides(self, context):
        container = ContainerSpec(
            name="app",
            image="registry.example.com/app:1.0",
            repository_credentials_arn=SECRET_ARN,
            health_check={"command": ["CMD-SHELL", "curl -f http://localhost/ || exit 1"], "interval": 30},
            command=("serve", "--port", "8081"),
            entry_point=("/bin/sh", "-c"),
            working_directory="/srv"
        )

        definition = compile_container(container, context)

        assert definition["repositoryCredentials"] == {"credentialsParameter": SECRET_ARN}
        assert definition["healthCheck"]["interval"] == 30
        assert definition["command"] == ["serve", "--port", "8081"]
        assert definition["entryPoint"] == ["/bin/sh", "-c"]
        assert definition["workingDirectory"] == "/srv"

    def test_extra_options_pass_through_without_overriding(self, context):
        container = ContainerSpec(
            name="app",
            image="nginx",
            extra_options={
                "ulimits": [{"name": "nofile", "softLimit": 1024, "hardLimit": 4096}],
                "image": "ignored",
            }
        )

        definition = compile_container(container, context)

        assert definition["ulimits"] == [{"name": "nofile", "softLimit": 1024, "hardLimit": 4096}]
        assert definition["image"] == "nginx"


class TestSecrets:
    """Test secret resolution."""

    def test_json_key_suffix(self):
        secret = SecretRef("DB_PASSWORD", SECRET_ARN, SecretSource.SECRETS_MANAGER, json_key="password")
        assert secret_value_from(secret) == f"{SECRET_ARN}:password::"

    def test_whole_secret(self):
        secret = SecretRef("DB_URL", SECRET_ARN, SecretSource.SECRETS_MANAGER)
        assert secret_value_from(secret) == SECRET_ARN

    def test_parameter_store(self, context):
        container = ContainerSpec(
            name="app",
            image="nginx",
            secrets=(SecretRef("SESSION_KEY", PARAMETER_ARN, SecretSource.PARAMETER_STORE),)
        )

        definition = compile_container(container, context)

        assert definition["secrets"] == [{"name": "SESSION_KEY", "valueFrom": PARAMETER_ARN}]


class TestDefinitions:
    """Test compiling a list of containers."""

    def test_one_to_one_and_order_preserving(self, context):
        containers = [ContainerSpec(name=name, image="nginx") for name in ("web", "sidecar", "init")]

        definitions = compile_container_definitions(containers, context)

        assert [definition["name"] for definition in definitions] == ["web", "sidecar", "init"]

    def test_cloudformation_casing_keeps_free_form_keys(self, context):
        container = ContainerSpec(
            name="app",
            image="nginx",
            log_group_name="/ecs/app",
            extra_options={"dockerLabels": {"com.example.team": "data"}}
        )
        definition = compile_container(container, context)

        converted = to_cloudformation([definition])[0]

        assert converted["Name"] == "app"
        assert converted["LogConfiguration"]["LogDriver"] == "awslogs"
        assert converted["LogConfiguration"]["Options"]["awslogs-group"] == "/ecs/app"
        assert converted["DockerLabels"] == {"com.example.team": "data"}
