"""Relay components - session registry, router and HTTP server."""

from dasher_automate.relay.registry import Connection, SessionRegistry
from dasher_automate.relay.router import Relay
from dasher_automate.relay.server import create_app, run_relay

__all__ = ["Connection", "SessionRegistry", "Relay", "create_app", "run_relay"]
