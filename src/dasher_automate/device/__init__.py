"""Device-side components - rule state, relay link and offline collaborators."""

from dasher_automate.device.state import DeviceState
from dasher_automate.device.link import DeviceLink, LinkState
from dasher_automate.device.replay import DryRunExecutor, JsonlOfferSource

__all__ = ["DeviceState", "DeviceLink", "LinkState", "DryRunExecutor", "JsonlOfferSource"]
