"""Debate format definitions and implementations."""

from .base import DebateFormat, SpeechSlot
from .british_parliamentary import BritishParliamentaryFormat
from .asian_parliamentary import AsianParliamentaryFormat
from .registry import format_registry

__all__ = [
    'DebateFormat',
    'SpeechSlot',
    'BritishParliamentaryFormat',
    'AsianParliamentaryFormat',
    'format_registry'
]
