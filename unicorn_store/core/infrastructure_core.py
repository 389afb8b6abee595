"""
Core Infrastructure Construct for the Unicorn Store

This construct creates the shared foundation every Unicorn Store workload
builds on: the Aurora PostgreSQL Serverless v2 cluster and its credentials,
the domain event bus, security groups, SSM parameters exposing connection
information, the Lambda code bucket and the Lambda Bedrock execution role.
"""

from constructs import Construct
from aws_cdk import (
    aws_ec2 as ec2,
    aws_events as events,
    aws_iam as iam,
    aws_rds as rds,
    aws_s3 as s3,
    aws_secretsmanager as secretsmanager,
    aws_ssm as ssm,
    CfnOutput,
    RemovalPolicy,
    SecretValue,
    Tags
)

DATABASE_NAME = "unicorns"
DATABASE_PORT = 5432
DATABASE_USERNAME = "postgres"
LOCAL_NETWORK_CIDR = "10.0.0.0/16"


class InfrastructureCore(Construct):
    """
    Shared infrastructure construct for the Unicorn Store.

    Creates:
    - Database credentials secret for the ``postgres`` user
    - Aurora PostgreSQL Serverless v2 cluster (0.5-4 ACU) in private subnets
    - ``unicorns`` EventBridge bus
    - Application security group
    - SSM parameters for the JDBC connection string and the Lambda bucket name
    - Password-only secret for services that cannot read JSON secret fields
    - S3 bucket for Lambda deployment artifacts
    - Lambda execution role with Amazon Bedrock access

    The order of the ``_create_*`` calls matters: the connection string
    parameter reads the cluster endpoint and the password secret reads the
    database secret name, so both producers must exist first.
    """

    def __init__(self, scope: Construct, construct_id: str, vpc: ec2.IVpc) -> None:
        super().__init__(scope, construct_id)

        self.vpc = vpc

        self.database_secret = self._create_database_secret()
        self.database = self._create_database(vpc, self.database_secret)
        self.event_bridge = self._create_event_bus()
        self.application_security_group = ec2.SecurityGroup(
            self,
            "ApplicationSecurityGroup",
            security_group_name="unicornstore-application-sg",
            vpc=vpc,
            allow_all_outbound=True
        )

        self.param_db_connection_string = self._create_param_db_connection_string()
        self.secret_password = self._create_secret_password()
        self.lambda_code_bucket = self._create_lambda_code_bucket()
        self.param_bucket_name = self._create_param_bucket_name()
        self.lambda_bedrock_role = self._create_roles_lambda_bedrock()

        Tags.of(self.database).add("Component", "Database")
        Tags.of(self.event_bridge).add("Component", "Messaging")
        Tags.of(self.lambda_code_bucket).add("Component", "Storage")

        self._create_outputs()

    def _create_database_secret(self) -> rds.DatabaseSecret:
        """Create the generated credential pair for the database master user."""
        return rds.DatabaseSecret(
            self,
            "postgres",
            secret_name="unicornstore-db-secret",
            username=DATABASE_USERNAME
        )

    def _create_database_security_group(self, vpc: ec2.IVpc) -> ec2.SecurityGroup:
        """Create security group allowing PostgreSQL traffic from the local network only."""
        database_security_group = ec2.SecurityGroup(
            self,
            "DatabaseSG",
            security_group_name="unicornstore-db-sg",
            allow_all_outbound=False,
            vpc=vpc
        )

        database_security_group.add_ingress_rule(
            ec2.Peer.ipv4(LOCAL_NETWORK_CIDR),
            ec2.Port.tcp(DATABASE_PORT),
            "Allow Database Traffic from local network"
        )

        return database_security_group

    def _create_database(
        self,
        vpc: ec2.IVpc,
        database_secret: rds.DatabaseSecret
    ) -> rds.DatabaseCluster:
        """Create Aurora PostgreSQL Serverless v2 cluster."""
        database_security_group = self._create_database_security_group(vpc)

        return rds.DatabaseCluster(
            self,
            "UnicornStoreDatabase",
            engine=rds.DatabaseClusterEngine.aurora_postgres(
                version=rds.AuroraPostgresEngineVersion.VER_16_4
            ),
            serverless_v2_min_capacity=0.5,
            serverless_v2_max_capacity=4,
            writer=rds.ClusterInstance.serverless_v2(
                "UnicornStoreDatabaseWriter",
                instance_identifier="unicornstore-db-writer",
                auto_minor_version_upgrade=True
            ),
            enable_data_api=True,
            default_database_name=DATABASE_NAME,
            cluster_identifier="unicornstore-db-cluster",
            instance_identifier_base="unicornstore-db-instance",
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
            security_groups=[database_security_group],
            credentials=rds.Credentials.from_secret(database_secret),
            removal_policy=RemovalPolicy.DESTROY
        )

    def _create_event_bus(self) -> events.EventBus:
        return events.EventBus(
            self,
            "UnicornEventBus",
            event_bus_name="unicorns"
        )

    def _create_param_db_connection_string(self) -> ssm.StringParameter:
        """Publish the JDBC connection string built from the cluster endpoint."""
        return ssm.StringParameter(
            self,
            "SsmParameterDBConnectionString",
            allowed_pattern=".*",
            description="Database Connection String",
            parameter_name="unicornstore-db-connection-string",
            string_value=self.get_db_connection_string(),
            tier=ssm.ParameterTier.STANDARD
        )

    def _create_secret_password(self) -> secretsmanager.Secret:
        # Password only, for services which cannot read a field from the secret JSON
        return secretsmanager.Secret(
            self,
            "dbSecretPassword",
            secret_name="unicornstore-db-password-secret",
            secret_string_value=SecretValue.secrets_manager(
                self.database_secret.secret_name,
                json_field="password"
            )
        )

    def _create_lambda_code_bucket(self) -> s3.Bucket:
        """Create private, TLS-only bucket for Lambda deployment artifacts."""
        return s3.Bucket(
            self,
            "LambdaCodeBucket",
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            removal_policy=RemovalPolicy.DESTROY
        )

    def _create_param_bucket_name(self) -> ssm.StringParameter:
        return ssm.StringParameter(
            self,
            "SsmParameterUnicornStoreBucketName",
            allowed_pattern=".*",
            description="Lambda code bucket name",
            parameter_name="unicornstore-lambda-bucket-name",
            string_value=self.lambda_code_bucket.bucket_name,
            tier=ssm.ParameterTier.STANDARD
        )

    def _create_roles_lambda_bedrock(self) -> iam.Role:
        """Create Lambda execution role with Bedrock and VPC access."""
        lambda_service_principal = iam.ServicePrincipal("lambda.amazonaws.com")

        lambda_bedrock_role = iam.Role(
            self,
            "UnicornStoreLambdaBedrockRole",
            role_name="unicornstore-lambda-bedrock-role",
            assumed_by=lambda_service_principal.with_session_tags()
        )
        lambda_bedrock_role.add_managed_policy(
            iam.ManagedPolicy.from_managed_policy_arn(
                self,
                "UnicornStoreLambdaBedrockRole-AmazonBedrockLimitedAccess",
                "arn:aws:iam::aws:policy/AmazonBedrockLimitedAccess"
            )
        )
        lambda_bedrock_role.add_managed_policy(
            iam.ManagedPolicy.from_managed_policy_arn(
                self,
                "UnicornStoreLambdaBedrockRole-AWSLambdaVPCAccessExecutionRole",
                "arn:aws:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole"
            )
        )

        self.get_event_bridge().grant_put_events_to(lambda_bedrock_role)
        self.get_database_secret().grant_read(lambda_bedrock_role)
        self.get_param_db_connection_string().grant_read(lambda_bedrock_role)

        Tags.of(lambda_bedrock_role).add("Component", "Processing")

        return lambda_bedrock_role

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs for core resource identifiers."""
        CfnOutput(
            self,
            "DatabaseClusterEndpoint",
            value=self.database.cluster_endpoint.hostname,
            description="Aurora cluster writer endpoint"
        )

        CfnOutput(
            self,
            "DatabaseSecretArn",
            value=self.database_secret.secret_arn,
            description="ARN of the database credentials secret"
        )

        CfnOutput(
            self,
            "DatabaseConnectionStringParameter",
            value=self.param_db_connection_string.parameter_name,
            description="SSM parameter holding the JDBC connection string"
        )

        CfnOutput(
            self,
            "EventBusName",
            value=self.event_bridge.event_bus_name,
            description="Name of the Unicorn Store event bus"
        )

        CfnOutput(
            self,
            "LambdaCodeBucketName",
            value=self.lambda_code_bucket.bucket_name,
            description="Name of the S3 bucket for Lambda deployment artifacts"
        )

    def get_db_connection_string(self) -> str:
        """Return the JDBC connection string for the cluster writer endpoint."""
        return (
            f"jdbc:postgresql://{self.database.cluster_endpoint.hostname}"
            f":{DATABASE_PORT}/{DATABASE_NAME}"
        )

    def get_database_secret_string(self) -> str:
        """Return a token resolving to the password field of the database secret."""
        return self.database_secret.secret_value_from_json("password").unsafe_unwrap()

    def get_vpc(self) -> ec2.IVpc:
        return self.vpc

    def get_database(self) -> rds.DatabaseCluster:
        return self.database

    def get_database_secret(self) -> rds.DatabaseSecret:
        return self.database_secret

    def get_event_bridge(self) -> events.EventBus:
        return self.event_bridge

    def get_application_security_group(self) -> ec2.ISecurityGroup:
        return self.application_security_group

    def get_param_db_connection_string(self) -> ssm.StringParameter:
        return self.param_db_connection_string

    def get_secret_password(self) -> secretsmanager.Secret:
        return self.secret_password

    def get_lambda_code_bucket(self) -> s3.Bucket:
        return self.lambda_code_bucket

    def get_param_bucket_name(self) -> ssm.StringParameter:
        return self.param_bucket_name

    def get_lambda_bedrock_role(self) -> iam.Role:
        return self.lambda_bedrock_role
