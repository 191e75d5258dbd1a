"""Infrastructure clients (Instance API)."""

from instancevol.infra.instance_api import InstanceAPIClient

__all__ = ["InstanceAPIClient"]
