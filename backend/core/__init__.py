"""
Core utilities
Security, identity, result records and exceptions
"""

from backend.core import security, exceptions, results, identity

__all__ = ["security", "exceptions", "results", "identity"]
