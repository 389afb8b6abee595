"""
Networking constructs for the Unicorn Store
"""

from .vpc_construct import VpcConstruct

__all__ = [
    "VpcConstruct"
]
