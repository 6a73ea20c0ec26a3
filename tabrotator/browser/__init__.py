"""
TabRotator browser access.

Components:
    BrowserEnvironment: Capability interface consumed by the rotation core
    TabInfo: Tab id, URL and window id
    BrowserError: Browser request failure
    TabNotFoundError: Tab id no longer refers to an open tab
    DevToolsBrowser: Chrome DevTools Protocol implementation
"""

from .base import BrowserEnvironment, BrowserError, TabInfo, TabNotFoundError
from .devtools import DevToolsBrowser

__all__ = [
    "BrowserEnvironment",
    "BrowserError",
    "DevToolsBrowser",
    "TabInfo",
    "TabNotFoundError",
]
