"""
Bearer token handling for user-facing entitlement endpoints.
"""

from .token import TokenVerifier

__all__ = ["TokenVerifier"]
