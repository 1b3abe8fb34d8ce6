"""
核心功能包
"""

from .exceptions import (
    RecapException,
    ConfigurationException,
    ContentFetchException,
    UnsupportedFormatException,
    UnreadableContentException,
    UpstreamAPIException,
    MalformedAIResponseException,
    PersistenceException,
    ValidationException,
    ResourceNotFoundException,
    ConflictException
)

from .logging import (
    setup_logging,
    get_logger,
    api_logger,
    pipeline_logger,
    ai_logger,
    db_logger
)

from .middleware import (
    RequestLoggingMiddleware,
    ExceptionHandlingMiddleware
)

__all__ = [
    # Exceptions
    "RecapException",
    "ConfigurationException",
    "ContentFetchException",
    "UnsupportedFormatException",
    "UnreadableContentException",
    "UpstreamAPIException",
    "MalformedAIResponseException",
    "PersistenceException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConflictException",

    # Logging
    "setup_logging",
    "get_logger",
    "api_logger",
    "pipeline_logger",
    "ai_logger",
    "db_logger",

    # Middleware
    "RequestLoggingMiddleware",
    "ExceptionHandlingMiddleware",
]
