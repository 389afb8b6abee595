"""
Core constructs for the Unicorn Store

This package contains the construct for the shared foundation:
- Aurora PostgreSQL Serverless v2 cluster and credentials
- EventBridge bus, security groups and SSM parameters
- Lambda code bucket and Lambda Bedrock role
"""

from .infrastructure_core import InfrastructureCore

__all__ = [
    "InfrastructureCore"
]
