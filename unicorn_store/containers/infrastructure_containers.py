"""
Containers Infrastructure Construct for the Unicorn Store

This construct creates the compute-facing resources used by the container
modules: the ECR repository for the Spring image, the App Runner VPC
connector and the IAM roles for App Runner and Amazon ECS. Every permission
on a shared resource is granted through the accessors of an existing
InfrastructureCore construct.
"""

import logging

from constructs import Construct
from aws_cdk import (
    aws_apprunner as apprunner,
    aws_ec2 as ec2,
    aws_ecr as ecr,
    aws_iam as iam,
    CfnOutput,
    RemovalPolicy,
    Tags
)

from ..core.infrastructure_core import InfrastructureCore

logger = logging.getLogger(__name__)


class InfrastructureContainers(Construct):
    """
    Construct for the container workloads of the Unicorn Store.

    Creates:
    - ECR repository ``unicorn-store-spring``
    - App Runner VPC connector on the private subnets of the core VPC
    - App Runner instance role and ECR access role
    - ECS task role and task execution role
    - Optionally, the App Runner service-linked role
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        infrastructure_core: InfrastructureCore,
        create_service_linked_role: bool = False
    ) -> None:
        super().__init__(scope, construct_id)

        self.infrastructure_core = infrastructure_core

        self.ecr_repository = self._create_unicorn_store_spring_ecr()
        self.vpc_connector = self._create_vpc_connector()
        self._create_roles_app_runner()
        self._create_roles_ecs()

        self.service_linked_role = None
        if create_service_linked_role:
            self.service_linked_role = self._create_app_runner_service_linked_role()

        self._create_outputs()

    def _create_unicorn_store_spring_ecr(self) -> ecr.Repository:
        """Create ECR repository removed together with its images on stack deletion."""
        repository = ecr.Repository(
            self,
            "UnicornStoreSpringEcr",
            repository_name="unicorn-store-spring",
            image_scan_on_push=False,
            removal_policy=RemovalPolicy.DESTROY,
            empty_on_delete=True
        )

        Tags.of(repository).add("Component", "Containers")

        return repository

    def _create_vpc_connector(self) -> apprunner.CfnVpcConnector:
        """Create App Runner VPC connector on the private subnets with egress."""
        private_subnets = self.infrastructure_core.get_vpc().select_subnets(
            subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
        )

        return apprunner.CfnVpcConnector(
            self,
            "UnicornStoreVpcConnector",
            subnets=private_subnets.subnet_ids,
            security_groups=[
                self.infrastructure_core.get_application_security_group().security_group_id
            ],
            vpc_connector_name="unicornstore-vpc-connector"
        )

    def _grant_shared_access(self, role: iam.IRole, include_connection_string: bool = True) -> None:
        """Grant event publishing and read access to the shared secrets and parameters."""
        self.infrastructure_core.get_event_bridge().grant_put_events_to(role)
        self.infrastructure_core.get_database_secret().grant_read(role)
        self.infrastructure_core.get_secret_password().grant_read(role)
        if include_connection_string:
            self.infrastructure_core.get_param_db_connection_string().grant_read(role)

    def _create_roles_app_runner(self) -> None:
        """Create App Runner instance role and ECR access role."""
        self.app_runner_role = iam.Role(
            self,
            "UnicornStoreApprunnerRole",
            role_name="unicornstore-apprunner-role",
            assumed_by=iam.ServicePrincipal("tasks.apprunner.amazonaws.com")
        )
        self.app_runner_role.add_to_policy(
            iam.PolicyStatement(
                actions=["xray:PutTraceSegments"],
                resources=["*"]
            )
        )
        self._grant_shared_access(self.app_runner_role)

        self.app_runner_ecr_access_role = iam.Role(
            self,
            "UnicornStoreApprunnerEcrAccessRole",
            role_name="unicornstore-apprunner-ecr-access-role",
            assumed_by=iam.ServicePrincipal("build.apprunner.amazonaws.com")
        )
        self.app_runner_ecr_access_role.add_managed_policy(
            iam.ManagedPolicy.from_managed_policy_arn(
                self,
                "UnicornStoreApprunnerEcrAccessRole-AWSAppRunnerServicePolicyForECRAccess",
                "arn:aws:iam::aws:policy/service-role/AWSAppRunnerServicePolicyForECRAccess"
            )
        )

        Tags.of(self.app_runner_role).add("Component", "AppRunner")
        Tags.of(self.app_runner_ecr_access_role).add("Component", "AppRunner")

    def _create_app_runner_service_linked_role(self) -> iam.CfnServiceLinkedRole:
        # Fails to deploy if the account already has this role
        logger.debug("Declaring App Runner service-linked role")
        return iam.CfnServiceLinkedRole(
            self,
            "AppRunnerServiceLinkedRole",
            aws_service_name="apprunner.amazonaws.com",
            description="Service-linked role for AWS App Runner service"
        )

    def _add_managed_policies(self, role: iam.Role, role_id: str, policy_arns: list) -> None:
        for policy_arn in policy_arns:
            policy_name = policy_arn.rsplit("/", 1)[-1]
            role.add_managed_policy(
                iam.ManagedPolicy.from_managed_policy_arn(
                    self,
                    f"{role_id}-{policy_name}",
                    policy_arn
                )
            )

    def _create_roles_ecs(self) -> None:
        """Create ECS task role and task execution role with OpenTelemetry permissions."""
        open_telemetry_policy = iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            actions=[
                "logs:PutLogEvents",
                "logs:CreateLogGroup",
                "logs:CreateLogStream",
                "logs:DescribeLogStreams",
                "logs:DescribeLogGroups",
                "logs:PutRetentionPolicy",
                "xray:PutTraceSegments",
                "xray:PutTelemetryRecords",
                "xray:GetSamplingRules",
                "xray:GetSamplingTargets",
                "xray:GetSamplingStatisticSummaries",
                "cloudwatch:PutMetricData",
                "ssm:GetParameters"
            ],
            resources=["*"]
        )

        self.ecs_task_role = iam.Role(
            self,
            "UnicornStoreEcsTaskRole",
            role_name="unicornstore-ecs-task-role",
            assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com")
        )
        self.ecs_task_role.add_to_policy(
            iam.PolicyStatement(
                actions=["xray:PutTraceSegments"],
                resources=["*"]
            )
        )
        self._add_managed_policies(
            self.ecs_task_role,
            "UnicornStoreEcsTaskRole",
            [
                "arn:aws:iam::aws:policy/CloudWatchLogsFullAccess",
                "arn:aws:iam::aws:policy/AmazonSSMReadOnlyAccess"
            ]
        )
        self.ecs_task_role.add_to_policy(open_telemetry_policy)
        self._grant_shared_access(self.ecs_task_role)

        self.ecs_task_execution_role = iam.Role(
            self,
            "UnicornStoreEcsTaskExecutionRole",
            role_name="unicornstore-ecs-task-execution-role",
            assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com")
        )
        self.ecs_task_execution_role.add_to_policy(
            iam.PolicyStatement(
                actions=["logs:CreateLogGroup"],
                resources=["*"]
            )
        )
        self._add_managed_policies(
            self.ecs_task_execution_role,
            "UnicornStoreEcsTaskExecutionRole",
            [
                "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy",
                "arn:aws:iam::aws:policy/CloudWatchLogsFullAccess",
                "arn:aws:iam::aws:policy/AmazonSSMReadOnlyAccess"
            ]
        )
        self.ecs_task_execution_role.add_to_policy(open_telemetry_policy)
        # Execution role reads the secrets only
        self._grant_shared_access(self.ecs_task_execution_role, include_connection_string=False)

        Tags.of(self.ecs_task_role).add("Component", "ECS")
        Tags.of(self.ecs_task_execution_role).add("Component", "ECS")

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs for container resources."""
        CfnOutput(
            self,
            "EcrRepositoryUri",
            value=self.ecr_repository.repository_uri,
            description="URI of the Unicorn Store Spring ECR repository"
        )

        CfnOutput(
            self,
            "VpcConnectorArn",
            value=self.vpc_connector.attr_vpc_connector_arn,
            description="ARN of the App Runner VPC connector"
        )

        CfnOutput(
            self,
            "AppRunnerRoleArn",
            value=self.app_runner_role.role_arn,
            description="ARN of the App Runner instance role"
        )

        CfnOutput(
            self,
            "EcsTaskRoleArn",
            value=self.ecs_task_role.role_arn,
            description="ARN of the ECS task role"
        )

        CfnOutput(
            self,
            "EcsTaskExecutionRoleArn",
            value=self.ecs_task_execution_role.role_arn,
            description="ARN of the ECS task execution role"
        )

    def get_ecr_repository(self) -> ecr.Repository:
        """Return the ECR repository."""
        return self.ecr_repository

    def get_vpc_connector(self) -> apprunner.CfnVpcConnector:
        """Return the App Runner VPC connector."""
        return self.vpc_connector

    def get_app_runner_role(self) -> iam.Role:
        """Return the App Runner instance role."""
        return self.app_runner_role

    def get_app_runner_ecr_access_role(self) -> iam.Role:
        """Return the role App Runner uses to pull images from ECR."""
        return self.app_runner_ecr_access_role

    def get_ecs_task_role(self) -> iam.Role:
        """Return the ECS task role."""
        return self.ecs_task_role

    def get_ecs_task_execution_role(self) -> iam.Role:
        """Return the ECS task execution role."""
        return self.ecs_task_execution_role
