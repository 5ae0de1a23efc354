"""
Utils Module
Shared logging, errors and timing helpers
"""
from .logger import setup_logger, get_logger, console
from .clock import Clock, CancellationToken
from .exceptions import (
    PregenError,
    ConfigurationError,
    CatalogError,
    BackendError,
    TransientBackendError,
    MalformedOutputError,
    ValidationFailure,
    PersistenceError,
    JobTimeout,
    InvalidJobTransition,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "console",
    "Clock",
    "CancellationToken",
    "PregenError",
    "ConfigurationError",
    "CatalogError",
    "BackendError",
    "TransientBackendError",
    "MalformedOutputError",
    "ValidationFailure",
    "PersistenceError",
    "JobTimeout",
    "InvalidJobTransition",
]
