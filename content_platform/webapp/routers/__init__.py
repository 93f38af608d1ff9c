"""
API routers for the webapp.
"""

from . import content, health, launch, tracking

__all__ = ["content", "health", "launch", "tracking"]
