"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Union

from .models import (
    Asset,
    DerivativeResult,
    DerivativeSpec,
    FileOutcome,
    FrameCapture,
    ImageEncoding,
    ProcessingProfile,
    VideoEncoding,
)

PathLike = Union[str, Path]


class S3ClientProtocol(Protocol):
    """Subset of the boto3 S3 client used by the blob store."""

    def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        ...

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        ...

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        ...

    def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        ...

    def copy_object(self, **kwargs: Any) -> Dict[str, Any]:
        ...

    def generate_presigned_url(
        self, ClientMethod: str, Params: Dict[str, Any], ExpiresIn: int
    ) -> str:
        ...


class BlobStoreProtocol(Protocol):
    """Object store capability consumed by the rendition workers."""

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Store ``data`` under ``key``; returns at least ``url`` and ``etag``."""
        ...

    def get(self, key: str) -> Dict[str, Any]:
        ...

    def exists(self, key: str) -> bool:
        ...

    def delete(self, key: str) -> None:
        ...

    def copy(self, source_key: str, destination_key: str) -> Dict[str, Any]:
        ...

    def sign(
        self,
        key: str,
        ttl: Optional[int] = None,
        upload: bool = False,
        content_type: Optional[str] = None,
    ) -> str:
        ...


class ImageTransformProtocol(Protocol):
    """In-memory image transform."""

    def resize(self, image_bytes: bytes, encoding: ImageEncoding) -> bytes:
        ...

    def describe(self, image_bytes: bytes) -> Dict[str, Any]:
        ...


class VideoTransformProtocol(Protocol):
    """File based video transform."""

    def transcode(
        self, input_path: PathLike, output_path: PathLike, encoding: VideoEncoding
    ) -> Dict[str, Any]:
        """Returns at least ``duration_seconds``."""
        ...

    def capture_frame(
        self, input_path: PathLike, output_path: PathLike, capture: FrameCapture
    ) -> Dict[str, Any]:
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...


class RenditionWorker(ABC):
    """Produces and stores one derivative of an asset."""

    @abstractmethod
    def run(
        self,
        asset: Asset,
        spec: DerivativeSpec,
        staging: Any,
        context: Optional[Any] = None,
    ) -> DerivativeResult:
        """Never raises for transform, staging or storage failures."""
        ...


class Coordinator(ABC):
    """Runs the full pipeline for one asset."""

    @abstractmethod
    def process_one(
        self, asset: Asset, profile: Optional[ProcessingProfile] = None
    ) -> FileOutcome:
        ...


class BatchProcessor(ABC):
    """Runs the pipeline over several assets."""

    @abstractmethod
    def process_many(self, submissions: Iterable[Any]) -> Any:
        ...

