"""Live file-change notification service for a watched scene directory."""

__version__ = "0.1.0"
