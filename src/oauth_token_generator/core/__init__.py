"""
Core utilities package for the OAuth token generator.

This package provides shared configuration.
"""

from .config import OAuthConfig, configure_logging

__all__ = [
    "OAuthConfig",
    "configure_logging",
]
