"""Custom exceptions for the media pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification attached to a failed derivative."""

    VALIDATION = "ValidationError"
    TRANSFORM = "TransformError"
    STORAGE = "StorageError"
    STAGING = "StagingError"
    CONFIGURATION = "ConfigurationError"
    INTERNAL = "InternalError"


class MediaPipelineError(Exception):
    """Base exception for all media pipeline errors."""

    kind: ErrorKind = ErrorKind.INTERNAL


class ValidationError(MediaPipelineError):
    """Raised for an unsupported asset kind or a malformed profile."""

    kind = ErrorKind.VALIDATION


class TransformError(MediaPipelineError):
    """Raised when a resize, transcode or frame capture fails."""

    kind = ErrorKind.TRANSFORM


class StorageError(MediaPipelineError):
    """Raised for object store failures (put, get, sign, delete, copy)."""

    kind = ErrorKind.STORAGE


class StagingError(MediaPipelineError):
    """Raised when a staging file cannot be written, read or created."""

    kind = ErrorKind.STAGING


class ConfigurationError(MediaPipelineError):
    """Raised for invalid configuration options."""

    kind = ErrorKind.CONFIGURATION
