"""
Database connection and session management.

This module provides async SQLAlchemy engine configuration and session
management for the Pet Moments feed store.
"""

from .connection import (
    DatabaseConfig,
    check_connection,
    close_engine,
    create_engine,
    get_database_url,
    wait_for_database,
)
from .session import SessionManager

__all__ = [
    # Connection utilities
    "DatabaseConfig",
    "create_engine",
    "get_database_url",
    "check_connection",
    "close_engine",
    "wait_for_database",
    # Session management
    "SessionManager",
]
