"""
Freelance Marketplace Services
==============================

Services:
- marketplace: Auth/session API, authorization guards and realtime notifier
"""

__all__ = [
    "marketplace",
]
