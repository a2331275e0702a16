"""
Marketplace Routes
==================

API route handlers for the marketplace service.
"""

from services.marketplace.routes import auth, realtime


__all__ = ["auth", "realtime"]
