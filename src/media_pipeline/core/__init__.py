"""Core utilities and shared components for the media pipeline."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    ConfigurationError,
    ErrorKind,
    MediaPipelineError,
    StagingError,
    StorageError,
    TransformError,
    ValidationError,
)
from .models import (
    Asset,
    BatchOutcome,
    DerivativeResult,
    DerivativeSpec,
    FileOutcome,
    MediaKind,
    PipelineState,
    ProcessingProfile,
    Submission,
)
from .keys import AssetCategory, make_key, sibling_key
from .planner import DerivativePlanner, plan
from .config import PipelineConfig

__all__ = [
    "get_logger",
    "setup_logger",
    "MediaPipelineError",
    "ValidationError",
    "TransformError",
    "StorageError",
    "StagingError",
    "ConfigurationError",
    "ErrorKind",
    "Asset",
    "ProcessingProfile",
    "Submission",
    "DerivativeSpec",
    "DerivativeResult",
    "FileOutcome",
    "BatchOutcome",
    "MediaKind",
    "PipelineState",
    "AssetCategory",
    "make_key",
    "sibling_key",
    "DerivativePlanner",
    "plan",
    "PipelineConfig",
]
