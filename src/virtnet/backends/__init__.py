"""Concrete virtualization service backends."""

from .libvirt_network import LibvirtNetworkService

__all__ = ["LibvirtNetworkService"]
