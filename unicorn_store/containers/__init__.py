"""
Container constructs for the Unicorn Store
"""

from .infrastructure_containers import InfrastructureContainers

__all__ = [
    "InfrastructureContainers"
]
