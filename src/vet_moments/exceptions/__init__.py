"""
Custom exceptions for the vet-moments package.

This module defines the exception hierarchy and custom exceptions
used throughout the Pet Moments feed core.
"""

from .core_exceptions import (  # Utility functions
    BusinessRuleException,
    ConfigurationException,
    ConnectionException,
    DatabaseConfigException,
    DatabaseException,
    EngagementException,
    EnvironmentException,
    FeedAssemblyException,
    FeedException,
    NotificationException,
    PostException,
    SchemaValidationException,
    TransactionException,
    ValidationException,
    VetMomentsException,
    create_error_response,
    format_validation_errors,
    log_exception_context,
)

__all__ = [
    # Exception classes
    "VetMomentsException",
    "DatabaseException",
    "ConnectionException",
    "TransactionException",
    "ValidationException",
    "SchemaValidationException",
    "BusinessRuleException",
    "ConfigurationException",
    "DatabaseConfigException",
    "EnvironmentException",
    "FeedException",
    "FeedAssemblyException",
    "EngagementException",
    "PostException",
    "NotificationException",
    # Utility functions
    "format_validation_errors",
    "create_error_response",
    "log_exception_context",
]
