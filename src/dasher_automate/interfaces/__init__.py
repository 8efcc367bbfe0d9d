"""Protocol interfaces for external collaborators."""

from dasher_automate.interfaces.source import OfferSource
from dasher_automate.interfaces.executor import ActionExecutor

__all__ = ["OfferSource", "ActionExecutor"]
