"""
Unicorn Store infrastructure

AWS CDK constructs and stack for the Unicorn Store sample application.
"""

from .unicorn_store_stack import UnicornStoreStack

__all__ = [
    "UnicornStoreStack"
]
