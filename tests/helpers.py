"""
Helpers for building test stacks and inspecting IAM policies in synthesized templates.
"""

import aws_cdk as cdk
from aws_cdk import aws_ec2 as ec2

from unicorn_store.containers import InfrastructureContainers
from unicorn_store.core import InfrastructureCore


def build_stack(create_service_linked_role=False, context=None):
    """Build a bare stack holding a test VPC, the core construct and the containers construct."""
    app = cdk.App(context=context or {})
    stack = cdk.Stack(app, "TestStack")
    vpc = ec2.Vpc(
        stack,
        "TestVpc",
        ip_addresses=ec2.IpAddresses.cidr("10.0.0.0/16"),
        max_azs=2,
    )
    core = InfrastructureCore(stack, "InfrastructureCore", vpc=vpc)
    containers = InfrastructureContainers(
        stack,
        "InfrastructureContainers",
        infrastructure_core=core,
        create_service_linked_role=create_service_linked_role,
    )
    return stack, core, containers


def _as_list(value):
    return value if isinstance(value, list) else [value]


def statements_for_role(stack, template, role):
    """Collect every policy statement attached inline to the given role."""
    role_ref = stack.resolve(role.role_name)
    statements = []
    for policy in template.find_resources("AWS::IAM::Policy").values():
        properties = policy["Properties"]
        if role_ref in properties.get("Roles", []):
            statements.extend(properties["PolicyDocument"]["Statement"])
    return statements


def role_has_grant(stack, template, role, action, resource):
    """Check that an Allow statement with ``action`` on ``resource`` is attached to ``role``."""
    resource_ref = stack.resolve(resource)
    for statement in statements_for_role(stack, template, role):
        if statement.get("Effect") != "Allow":
            continue
        if action in _as_list(statement["Action"]) and resource_ref in _as_list(statement["Resource"]):
            return True
    return False


def role_properties(template, role_name):
    """Return the properties of the IAM role with the given physical name."""
    roles = template.find_resources("AWS::IAM::Role", {"Properties": {"RoleName": role_name}})
    assert len(roles) == 1, f"expected one role named {role_name}, found {len(roles)}"
    return next(iter(roles.values()))["Properties"]


def trust_actions_and_services(properties):
    actions = set()
    services = set()
    for statement in properties["AssumeRolePolicyDocument"]["Statement"]:
        actions.update(_as_list(statement["Action"]))
        services.update(_as_list(statement["Principal"]["Service"]))
    return actions, services
