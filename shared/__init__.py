"""
Freelance Marketplace Shared Library
====================================

Common utilities, configurations, and abstractions shared across marketplace services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - auth: JWT signing/verification, password hashing, bearer extraction
    - database: Relational (SQLAlchemy async) and Redis clients
    - models: Shared Pydantic response models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "Freelance Marketplace Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
