"""
Package: config
Description: Environment driven configuration for the SQS poller.
"""

from .settings import PollerSettings, settings

__all__ = ["PollerSettings", "settings"]
