"""Abstract interfaces implemented by virtnet backends and resources."""

from .resource import Resource
from .virtualization import VirtualizationService

__all__ = ["Resource", "VirtualizationService"]
