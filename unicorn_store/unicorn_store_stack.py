"""
Unicorn Store Infrastructure Stack

This stack wires the Unicorn Store infrastructure together: the VPC, the
shared core resources (database, event bus, parameters, secrets, bucket) and
the container resources (ECR, App Runner and ECS roles).
"""

import logging
from typing import Any, Optional

import aws_cdk as cdk
from constructs import Construct
from aws_cdk import (
    Stack,
    CfnOutput
)

from .networking.vpc_construct import VpcConstruct
from .core.infrastructure_core import InfrastructureCore
from .containers.infrastructure_containers import InfrastructureContainers

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "yes", "1")
_FALSE_VALUES = ("false", "no", "0", "")


def get_context_flag(scope: Construct, key: str, default: bool = False) -> bool:
    """
    Read a boolean from CDK context.

    Context given on the command line (``-c key=true``) arrives as a string,
    while values from cdk.json are real booleans; both are accepted.

    Raises:
        ValueError: if the value cannot be read as a boolean
    """
    value = scope.node.try_get_context(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Context value for '{key}' must be a boolean, got {value!r}")


class UnicornStoreStack(Stack):
    """
    Main CDK Stack for the Unicorn Store

    Builds, in order:
    - VPC (created, or looked up from the ``vpc_id`` context value)
    - InfrastructureCore
    - InfrastructureContainers, which reads the outputs of the core construct
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs: Any) -> None:
        super().__init__(scope, construct_id, **kwargs)

        environment = self.node.try_get_context("environment") or "dev"
        vpc_id: Optional[str] = self.node.try_get_context("vpc_id")
        create_service_linked_role = get_context_flag(
            self, "create_apprunner_service_linked_role"
        )

        cdk.Tags.of(self).add("Project", "UnicornStore")
        cdk.Tags.of(self).add("Environment", environment)

        logger.info(
            "Building %s for environment %s (existing VPC: %s)",
            construct_id, environment, vpc_id or "none"
        )

        self.vpc_construct = VpcConstruct(self, "VpcConstruct", vpc_id=vpc_id)
        self.vpc = self.vpc_construct.get_vpc()

        self.infrastructure_core = InfrastructureCore(
            self,
            "InfrastructureCore",
            vpc=self.vpc
        )

        self.infrastructure_containers = InfrastructureContainers(
            self,
            "InfrastructureContainers",
            infrastructure_core=self.infrastructure_core,
            create_service_linked_role=create_service_linked_role
        )

        CfnOutput(
            self,
            "StackName",
            value=self.stack_name,
            description="Name of the deployed stack"
        )

        CfnOutput(
            self,
            "Region",
            value=self.region,
            description="AWS region where the stack is deployed"
        )
