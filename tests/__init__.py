"""
Freelance Marketplace Test Suite
================================

Test organization:
- tests/unit/                    - Unit tests (no database)
- tests/services/marketplace/    - Service tests (in-memory SQLite)

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=shared --cov=services
"""
