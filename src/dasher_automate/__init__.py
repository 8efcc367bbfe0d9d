"""dasher_automate - offer decision engine and device/console relay."""

__version__ = "0.1.0"
