"""
VPC Construct for the Unicorn Store

This construct provides the network the Unicorn Store runs in. It either
creates a VPC with public and private subnets across two AZs, or looks up an
existing VPC by id when one is supplied.
"""

import logging
from typing import List, Optional

from constructs import Construct
from aws_cdk import (
    aws_ec2 as ec2,
    CfnOutput
)

logger = logging.getLogger(__name__)

VPC_CIDR = "10.0.0.0/16"


class VpcConstruct(Construct):
    """
    VPC construct that creates networking infrastructure for the Unicorn Store.

    Creates:
    - VPC with public and private (egress) subnets across 2 AZs
    - Single NAT Gateway for outbound traffic from private subnets
    - S3 gateway endpoint

    When ``vpc_id`` is given nothing is created; the VPC is resolved with a
    context lookup, which requires the stack to have an explicit account and
    region.
    """

    def __init__(self, scope: Construct, construct_id: str, vpc_id: Optional[str] = None) -> None:
        super().__init__(scope, construct_id)

        if vpc_id:
            logger.debug("Looking up existing VPC %s", vpc_id)
            self.vpc = ec2.Vpc.from_lookup(self, "UnicornStoreVpc", vpc_id=vpc_id)
        else:
            self.vpc = self._create_vpc()

        self.public_subnets = self.vpc.public_subnets
        self.private_subnets = self.vpc.private_subnets

        CfnOutput(
            scope,
            "VpcId",
            value=self.vpc.vpc_id,
            description="ID of the VPC"
        )

    def _create_vpc(self) -> ec2.Vpc:
        vpc = ec2.Vpc(
            self,
            "UnicornStoreVpc",
            vpc_name="unicornstore-vpc",
            ip_addresses=ec2.IpAddresses.cidr(VPC_CIDR),
            max_azs=2,
            nat_gateways=1,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24,
                ),
            ],
            enable_dns_hostnames=True,
            enable_dns_support=True,
        )

        # S3 Gateway endpoint (no additional charges)
        vpc.add_gateway_endpoint(
            "S3Endpoint",
            service=ec2.GatewayVpcEndpointAwsService.S3,
            subnets=[ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS)]
        )

        return vpc

    def get_vpc(self) -> ec2.IVpc:
        """Return the VPC instance."""
        return self.vpc

    def get_private_subnets(self) -> List[ec2.ISubnet]:
        """Return private subnets for the database and container workloads."""
        return self.private_subnets

    def get_public_subnets(self) -> List[ec2.ISubnet]:
        """Return public subnets."""
        return self.public_subnets
