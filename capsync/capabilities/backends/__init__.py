"""
Communication backends for device capabilities.

Backends handle the actual communication with devices. The capability
layer only needs ``send`` and a way to tell an ok response from an error.
"""

from .base import Transport, check_ok, response_result
from .mock import MockTransport

__all__ = ["Transport", "check_ok", "response_result", "MockTransport"]
