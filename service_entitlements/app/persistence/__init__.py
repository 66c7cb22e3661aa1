"""
Persistence adapters for membership and tenant feature lookups.
"""

from .postgres import PostgresMembershipStore

__all__ = ["PostgresMembershipStore"]
