"""API components - relay command client."""

from dasher_automate.api.client import RelayClient

__all__ = ["RelayClient"]
