#!/usr/bin/env python3
"""
Unicorn Store Infrastructure CDK Application

This application deploys the infrastructure of the Unicorn Store sample:
- VPC with public and private subnets
- Amazon Aurora PostgreSQL Serverless v2 cluster
- Amazon EventBridge bus, SSM parameters and Secrets Manager secrets
- Amazon S3 bucket for Lambda code and Lambda Bedrock role
- Amazon ECR repository, AWS App Runner VPC connector and roles
- Amazon ECS task roles
"""

import logging
import os

import aws_cdk as cdk
from unicorn_store.unicorn_store_stack import UnicornStoreStack

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = cdk.App()

# Get environment configuration
env = cdk.Environment(
    account=app.node.try_get_context("account") or os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=app.node.try_get_context("region") or os.getenv("CDK_DEFAULT_REGION")
)
logger.info("Synthesizing for account=%s region=%s", env.account, env.region)

UnicornStoreStack(
    app,
    "UnicornStoreInfrastructure",
    env=env,
    description="Unicorn Store infrastructure: Aurora PostgreSQL, EventBridge, ECR, App Runner and ECS roles"
)

app.synth()
