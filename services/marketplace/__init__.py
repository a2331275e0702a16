"""
Marketplace Service
===================

REST API for the freelance marketplace.

Features:
- Registration, login and session refresh with persisted refresh tokens
- Logout and password reset with refresh token revocation
- Role, verification and ownership guards
- Per-identity rate limiting
- Authenticated WebSocket rooms for messages and notifications

Port: 5000
"""

__version__ = "0.1.0"
