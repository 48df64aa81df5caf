"""
virtnet - declarative libvirt virtual networks.

Builds complete network definitions from compact specs (CIDR blocks,
forwarding mode, DNS) and reconciles them against a libvirt host.
"""

__version__ = "0.1.0"

from virtnet.builder import build
from virtnet.models import NetworkSpec, NetworkState
from virtnet.reconciler import NetworkReconciler

__all__ = ["NetworkReconciler", "NetworkSpec", "NetworkState", "build", "__version__"]
