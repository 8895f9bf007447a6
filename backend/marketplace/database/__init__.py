"""
Database package initialization.

The package follows a modular structure:
- base: declarative base and shared mixins
- connection: async engine and session management
- models: ORM models for users, products and orders
"""

__all__ = []
