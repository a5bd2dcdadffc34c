"""
End-to-end tests of the service compiler.

Each test compiles a spec into its resource graph and checks the graph as a whole:
resource order, task definition, service and outputs.
"""

import dataclasses
import json

import pytest

from stacks.common.exceptions import ServiceSpecValidationError
from stacks.fargate_service import (
    ContainerSpec,
    ListenerAction,
    PortMapping,
    SecretRef,
    SecretSource,
    ServiceSpecValidator,
    compile_service
)
from stacks.fargate_service.assembler import task_family
from stacks.fargate_service.constants import (
    LISTENER_RULE_TYPE,
    ROLE_TYPE,
    SECURITY_GROUP_TYPE,
    SERVICE_TYPE,
    TARGET_GROUP_TYPE,
    TASK_DEFINITION_TYPE
)

from conftest import SUBNET_IDS


SECRET_ARN = "arn:aws:secretsmanager:ap-southeast-2:123456789012:secret:pgweb-db-AbCdEf"


@pytest.fixture
def oidc_action():
    return ListenerAction.authenticate_oidc(
        issuer="https://myorg.okta.com",
        authorization_endpoint="https://myorg.okta.com/oauth2/v1/authorize",
        token_endpoint="https://myorg.okta.com/oauth2/v1/token",
        user_info_endpoint="https://myorg.okta.com/oauth2/v1/userinfo",
        client_id="client",
        client_secret="secret"
    )


class TestScenarios:
    """Test complete compilations."""

    def test_single_container_without_alb(self, make_spec, context):
        """Test a plain service: baseline role, egress only group, no load balancer binding."""
        graph = compile_service(make_spec(), context)

        assert [resource.resource_type for resource in graph.resources] == [
            ROLE_TYPE, ROLE_TYPE, SECURITY_GROUP_TYPE, TASK_DEFINITION_TYPE, SERVICE_TYPE
        ]
        execution_role = graph.get("PgwebDevExecutionRole").properties
        assert "Policies" not in execution_role
        assert len(execution_role["ManagedPolicyArns"]) == 1

        security_group = graph.get("PgwebDevServiceSecurityGroup").properties
        assert "SecurityGroupIngress" not in security_group

        service = graph.get("PgwebDevService")
        assert "LoadBalancers" not in service.properties
        assert "HealthCheckGracePeriodSeconds" not in service.properties
        assert service.depends_on == ()
        assert graph.edges == ()

    def test_secret_log_group_and_authenticated_alb(self, make_spec, context, alb_integration, oidc_action):
        """Test a service with a secret, a log group and an authenticating load balancer rule."""
        container = ContainerSpec(
            name="pgweb",
            image="sosedoff/pgweb:latest",
            port_mappings=(PortMapping(container_port=8081),),
            secrets=(SecretRef("DATABASE_URL", SECRET_ARN, SecretSource.SECRETS_MANAGER),),
            log_group_name="/ecs/pgweb-dev"
        )
        alb = dataclasses.replace(alb_integration, rule_actions=(oidc_action,))
        spec = make_spec(cpu=256, memory=512, containers=(container,), alb_integration=alb)

        graph = compile_service(spec, context)

        execution_role = graph.get("PgwebDevExecutionRole").properties
        policy_names = [policy["PolicyName"] for policy in execution_role["Policies"]]
        assert policy_names == ["logs-policy", "secrets-manager-policy"]
        assert len(execution_role["ManagedPolicyArns"]) == 1

        ingress = graph.get("PgwebDevServiceSecurityGroup").properties["SecurityGroupIngress"]
        assert len(ingress) == 1
        assert ingress[0]["FromPort"] == 8081

        actions = graph.get("PgwebDevListenerRule").properties["Actions"]
        assert [(action["Type"], action["Order"]) for action in actions] == [
            ("authenticate-oidc", 1), ("forward", 2)
        ]

        service = graph.get("PgwebDevService")
        assert service.depends_on == ("PgwebDevListenerRule",)
        assert graph.edges[0].dependent == "PgwebDevService"
        assert graph.edges[0].prerequisite == "PgwebDevListenerRule"

    def test_over_allocated_cpu_fails(self, make_spec, context):
        """Test that two containers asking for 1200 CPU units do not fit a 1024 unit task."""
        containers = (
            ContainerSpec(name="web", image="nginx", cpu=700),
            ContainerSpec(name="worker", image="worker", cpu=500),
        )

        with pytest.raises(ServiceSpecValidationError) as exc_info:
            compile_service(make_spec(cpu=1024, memory=2048, containers=containers), context)

        assert "1200 > 1024" in str(exc_info.value)


class TestAssembly:
    """Test the task definition, service and outputs."""

    def test_resource_order_with_alb(self, make_spec, context, alb_integration):
        graph = compile_service(make_spec(alb_integration=alb_integration), context)

        assert [resource.logical_id for resource in graph.resources] == [
            "PgwebDevExecutionRole",
            "PgwebDevTaskRole",
            "PgwebDevServiceSecurityGroup",
            "PgwebDevTargetGroup",
            "PgwebDevListenerRule",
            "PgwebDevTaskDefinition",
            "PgwebDevService",
        ]
        assert len(graph.of_type(TARGET_GROUP_TYPE)) == 1
        assert len(graph.of_type(LISTENER_RULE_TYPE)) == 1

    def test_task_definition(self, make_spec, context):
        graph = compile_service(make_spec(cpu=512, memory=1024), context)

        properties = graph.get("PgwebDevTaskDefinition").properties
        assert properties["Family"] == task_family("pgweb-dev")
        assert properties["Family"].startswith("pgweb-dev-")
        assert properties["Cpu"] == "512"
        assert properties["Memory"] == "1024"
        assert properties["NetworkMode"] == "awsvpc"
        assert properties["RequiresCompatibilities"] == ["FARGATE"]
        assert properties["ExecutionRoleArn"] == {"Fn::GetAtt": ["PgwebDevExecutionRole", "Arn"]}
        assert properties["TaskRoleArn"] == {"Fn::GetAtt": ["PgwebDevTaskRole", "Arn"]}
        assert properties["ContainerDefinitions"][0]["Name"] == "pgweb"

    def test_service(self, make_spec, context, alb_integration):
        spec = make_spec(cluster="pgweb-cluster", desired_count=2, alb_integration=alb_integration)

        properties = compile_service(spec, context).get("PgwebDevService").properties

        assert properties["Cluster"] == "pgweb-cluster"
        assert properties["LaunchType"] == "FARGATE"
        assert properties["DesiredCount"] == 2
        assert properties["TaskDefinition"] == {"Ref": "PgwebDevTaskDefinition"}
        network = properties["NetworkConfiguration"]["AwsvpcConfiguration"]
        assert network["Subnets"] == list(SUBNET_IDS)
        assert network["SecurityGroups"] == [{"Fn::GetAtt": ["PgwebDevServiceSecurityGroup", "GroupId"]}]
        assert network["AssignPublicIp"] == "DISABLED"
        assert properties["DeploymentConfiguration"]["DeploymentCircuitBreaker"] == {"Enable": True, "Rollback": True}
        assert properties["LoadBalancers"][0]["TargetGroupArn"] == {"Ref": "PgwebDevTargetGroup"}

    def test_default_cluster(self, make_spec, context):
        properties = compile_service(make_spec(), context).get("PgwebDevService").properties
        assert "Cluster" not in properties

    def test_outputs(self, make_spec, context, alb_integration):
        without_alb = compile_service(make_spec(), context)
        with_alb = compile_service(make_spec(alb_integration=alb_integration), context)

        assert set(without_alb.outputs) == {
            "ExecutionRoleArn", "TaskRoleArn", "SecurityGroupId", "TaskDefinitionArn"
        }
        assert set(with_alb.outputs) == set(without_alb.outputs) | {"TargetGroupArn", "ListenerRuleArn"}
        assert with_alb.outputs["ListenerRuleArn"] == {"Ref": "PgwebDevListenerRule"}

    def test_to_template(self, make_spec, context, alb_integration):
        template = compile_service(make_spec(alb_integration=alb_integration), context).to_template()

        assert template["Resources"]["PgwebDevService"]["DependsOn"] == ["PgwebDevListenerRule"]
        assert "DependsOn" not in template["Resources"]["PgwebDevTaskDefinition"]
        assert template["Outputs"]["TaskRoleArn"] == {"Value": {"Fn::GetAtt": ["PgwebDevTaskRole", "Arn"]}}


class TestDeterminism:
    """Test that compilation is pure."""

    def test_same_spec_same_graph(self, make_spec, context, alb_integration):
        spec = make_spec(alb_integration=alb_integration)

        first = compile_service(spec, context)
        second = compile_service(spec, context)

        assert first == second
        assert json.dumps(first.to_template(), sort_keys=True) == json.dumps(second.to_template(), sort_keys=True)

    def test_normalized_spec_compiles_identically(self, make_spec, context):
        spec = make_spec()
        normalized = ServiceSpecValidator.validate(spec)

        assert compile_service(spec, context) == compile_service(normalized, context)

    def test_namespace_changes_identities(self, make_spec, context):
        dev = compile_service(make_spec(stage="dev"), context)
        prod = compile_service(make_spec(stage="prod"), context)

        assert dev.get("PgwebDevService")
        assert prod.get("PgwebProdService")
        assert dev.get("PgwebDevTaskDefinition").properties["Family"] != \
            prod.get("PgwebProdTaskDefinition").properties["Family"]
