"""
Tests for the core infrastructure construct.
"""

from aws_cdk.assertions import Match

from helpers import build_stack, role_has_grant, role_properties, trust_actions_and_services


def test_database_capacity_bounds(template):
    template.has_resource_properties(
        "AWS::RDS::DBCluster",
        {
            "ServerlessV2ScalingConfiguration": {"MinCapacity": 0.5, "MaxCapacity": 4},
            "DBClusterIdentifier": "unicornstore-db-cluster",
            "DatabaseName": "unicorns",
            "Engine": "aurora-postgresql",
            "EngineVersion": "16.4",
            "EnableHttpEndpoint": True,
        },
    )


def test_database_is_destroyed_with_stack(template):
    template.has_resource(
        "AWS::RDS::DBCluster",
        {"DeletionPolicy": "Delete", "UpdateReplacePolicy": "Delete"},
    )


def test_database_writer_is_serverless(template):
    template.resource_count_is("AWS::RDS::DBInstance", 1)
    template.has_resource_properties(
        "AWS::RDS::DBInstance",
        {
            "DBInstanceClass": "db.serverless",
            "DBInstanceIdentifier": "unicornstore-db-writer",
            "AutoMinorVersionUpgrade": True,
        },
    )


def test_database_secret_username(template):
    template.has_resource_properties(
        "AWS::SecretsManager::Secret",
        {
            "Name": "unicornstore-db-secret",
            "GenerateSecretString": Match.object_like(
                {"SecretStringTemplate": '{"username":"postgres"}', "GenerateStringKey": "password"}
            ),
        },
    )


def test_database_security_group_only_allows_local_network(template):
    template.has_resource_properties(
        "AWS::EC2::SecurityGroup",
        {
            "GroupName": "unicornstore-db-sg",
            "SecurityGroupIngress": [
                {
                    "CidrIp": "10.0.0.0/16",
                    "Description": "Allow Database Traffic from local network",
                    "FromPort": 5432,
                    "IpProtocol": "tcp",
                    "ToPort": 5432,
                }
            ],
            "SecurityGroupEgress": [Match.object_like({"CidrIp": "255.255.255.255/32"})],
        },
    )


def test_application_security_group_allows_all_outbound(template):
    template.has_resource_properties(
        "AWS::EC2::SecurityGroup",
        {
            "GroupName": "unicornstore-application-sg",
            "SecurityGroupEgress": [Match.object_like({"CidrIp": "0.0.0.0/0", "IpProtocol": "-1"})],
        },
    )


def test_event_bus_name(template):
    template.has_resource_properties("AWS::Events::EventBus", {"Name": "unicorns"})


def test_connection_string_parameter(stack, core, template):
    endpoint = stack.resolve(core.get_database().cluster_endpoint.hostname)
    template.has_resource_properties(
        "AWS::SSM::Parameter",
        {
            "Name": "unicornstore-db-connection-string",
            "Type": "String",
            "Tier": "Standard",
            "AllowedPattern": ".*",
            "Value": {"Fn::Join": ["", ["jdbc:postgresql://", endpoint, ":5432/unicorns"]]},
        },
    )


def test_connection_string_accessor_uses_endpoint(stack, core):
    resolved = stack.resolve(core.get_db_connection_string())
    parts = resolved["Fn::Join"][1]
    assert parts[0] == "jdbc:postgresql://"
    assert parts[-1] == ":5432/unicorns"


def test_password_secret_references_password_field(stack, core, template):
    secret_name = core.get_database_secret().secret_name
    template.has_resource_properties(
        "AWS::SecretsManager::Secret",
        {
            "Name": "unicornstore-db-password-secret",
            "SecretString": stack.resolve(
                "{{resolve:secretsmanager:" + secret_name + ":SecretString:password::}}"
            ),
        },
    )


def test_lambda_code_bucket_is_private_and_tls_only(template):
    template.has_resource(
        "AWS::S3::Bucket",
        {
            "Properties": Match.object_like(
                {
                    "PublicAccessBlockConfiguration": {
                        "BlockPublicAcls": True,
                        "BlockPublicPolicy": True,
                        "IgnorePublicAcls": True,
                        "RestrictPublicBuckets": True,
                    }
                }
            ),
            "DeletionPolicy": "Delete",
        },
    )
    template.has_resource_properties(
        "AWS::S3::BucketPolicy",
        {
            "PolicyDocument": {
                "Statement": Match.array_with(
                    [
                        Match.object_like(
                            {
                                "Effect": "Deny",
                                "Condition": {"Bool": {"aws:SecureTransport": "false"}},
                            }
                        )
                    ]
                )
            }
        },
    )


def test_bucket_name_parameter(stack, core, template):
    template.has_resource_properties(
        "AWS::SSM::Parameter",
        {
            "Name": "unicornstore-lambda-bucket-name",
            "Value": stack.resolve(core.get_lambda_code_bucket().bucket_name),
        },
    )


def test_lambda_bedrock_role_trust_and_managed_policies(template):
    properties = role_properties(template, "unicornstore-lambda-bedrock-role")
    actions, services = trust_actions_and_services(properties)

    assert services == {"lambda.amazonaws.com"}
    assert {"sts:AssumeRole", "sts:TagSession"} <= actions
    assert properties["ManagedPolicyArns"] == [
        "arn:aws:iam::aws:policy/AmazonBedrockLimitedAccess",
        "arn:aws:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole",
    ]


def test_lambda_bedrock_role_grants(stack, core, template):
    role = core.get_lambda_bedrock_role()
    assert role_has_grant(
        stack, template, role, "events:PutEvents", core.get_event_bridge().event_bus_arn
    )
    assert role_has_grant(
        stack, template, role, "secretsmanager:GetSecretValue", core.get_database_secret().secret_arn
    )
    assert role_has_grant(
        stack, template, role, "ssm:GetParameter", core.get_param_db_connection_string().parameter_arn
    )
    assert not role_has_grant(
        stack, template, role, "secretsmanager:GetSecretValue", core.get_secret_password().secret_arn
    )


def test_accessors_return_declared_resources(core):
    assert core.get_database() is core.database
    assert core.get_database_secret() is core.database_secret
    assert core.get_secret_password() is core.secret_password
    assert core.get_param_bucket_name() is core.param_bucket_name
    assert core.get_application_security_group() is core.application_security_group
    assert core.get_vpc() is core.vpc


def test_database_secret_string_resolves_password_field(stack, core):
    secret_arn = core.get_database_secret().secret_arn
    expected = stack.resolve(
        "{{resolve:secretsmanager:" + secret_arn + ":SecretString:password::}}"
    )

    assert stack.resolve(core.get_database_secret_string()) == expected


def test_database_secret_string_with_secret_usage_check():
    stack, core, _ = build_stack(context={"@aws-cdk/core:checkSecretUsage": True})
    secret_arn = core.get_database_secret().secret_arn

    assert stack.resolve(core.get_database_secret_string()) == stack.resolve(
        "{{resolve:secretsmanager:" + secret_arn + ":SecretString:password::}}"
    )
