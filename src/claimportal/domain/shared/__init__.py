"""Shared domain utilities.

This package is domain-accessible and should not depend on application code.
"""

from .clock import Clock, system_clock
from .token_minter_protocol import TokenMinterProtocol

__all__ = ["Clock", "TokenMinterProtocol", "system_clock"]
