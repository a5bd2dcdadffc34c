#!/usr/bin/env python3

import aws_cdk as cdk
from helper import config
from stacks import ServiceStack
from cdk_nag import ( AwsSolutionsChecks, NagSuppressions )
import logging
import os

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format='%(levelname)s %(name)s: %(message)s'
)

app = cdk.App()

conf = config.Config(app.node.try_get_context('environment') or 'development')

# Use ProjectName for all stack naming
project_name = conf.get('ProjectName')

service_stack = ServiceStack(app, f"{project_name}-{conf.get_stage()}-service",
                             config=conf,
                             env={
                                 "region": conf.get('RegionName'),
                                 "account": os.environ.get('CDK_DEFAULT_ACCOUNT')
                             }
                             )

# Apply CDK Nag AwsSolutions checks to all stacks
cdk.Aspects.of(app).add(AwsSolutionsChecks())

# Suppressions for legitimate architectural patterns that cannot be avoided
NagSuppressions.add_stack_suppressions(service_stack, [
    {"id": "AwsSolutions-EC23", "reason": "Internet-facing load balancer serves HTTP/HTTPS to any client"},
    {"id": "AwsSolutions-ELB2", "reason": "Access logging is enabled when LoadBalancer.LogBucket is configured"},
    {"id": "AwsSolutions-IAM4", "reason": "AmazonECSTaskExecutionRolePolicy is the AWS managed baseline for pulling images and writing logs",
     "appliesTo": ["Policy::arn:<AWS::Partition>:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"]},
    {"id": "AwsSolutions-IAM5", "reason": "Log stream names are generated by ECS, execution role may write to any stream of the application log group",
     "appliesTo": [{"regex": "/^Resource::arn:.*:logs:.*:log-group:.*:\\*$/"}]},
    {"id": "AwsSolutions-ECS2", "reason": "Container Environment holds non-secret settings only, credentials are injected through Container.Secrets"},
    {"id": "CdkNagValidationFailure", "reason": "Security group rules use intrinsic functions which cannot be validated at synth time"}
])

app.synth()
