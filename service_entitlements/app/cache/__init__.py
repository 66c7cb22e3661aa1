"""
Cache package for Entitlements Service.

Provides a Redis-backed cache of resolved entitlements, invalidated per
user by bumping a version token.
"""

from .redis_cache import EntitlementCache

__all__ = ["EntitlementCache"]
