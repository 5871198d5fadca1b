"""
Browsers module - Automation driver implementations.
"""

from actwright.browsers.base import BaseAutomationDriver
from actwright.browsers.playwright_driver import PlaywrightDriver

__all__ = [
    "BaseAutomationDriver",
    "PlaywrightDriver",
]
