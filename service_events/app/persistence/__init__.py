"""
Event storage for the Events Service.
"""

from .memory import InMemoryEventRepository

__all__ = ["InMemoryEventRepository"]
