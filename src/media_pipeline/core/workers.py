"""Rendition workers: produce one derivative and store it."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .exceptions import ErrorKind, MediaPipelineError, TransformError
from .keys import AssetCategory, file_extension, file_stem, make_key, UNKNOWN_EXTENSION
from .models import (
    Asset,
    DerivativeResult,
    DerivativeSpec,
    FrameCapture,
    ImageEncoding,
    Operation,
    VideoEncoding,
    content_type_for,
    extension_for,
)
from .observability import LogContext, MetricsCollector
from .protocols import (
    BlobStoreProtocol,
    ImageTransformProtocol,
    LoggerProtocol,
    RenditionWorker,
    VideoTransformProtocol,
)
from .staging import StagingArea


@dataclass
class Rendition:
    """Encoded output of a transform, ready for upload."""

    data: bytes
    content_type: str
    extension: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)


def derived_filename(filename: str, variant: str, extension: str) -> str:
    return f"{variant}_{file_stem(filename)}.{extension}"


def processed_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class BaseRenditionWorker(RenditionWorker):
    """
    Shared run loop: render, name, upload, classify failures.

    Subclasses implement ``render``. Nothing raised by ``render`` or by the
    upload escapes ``run``; it is returned as a failed DerivativeResult.
    """

    object_type = "derivative"

    def __init__(
        self,
        blob_store: BlobStoreProtocol,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
        category: AssetCategory = AssetCategory.PROCESSED,
    ):
        self._blob_store = blob_store
        self._logger = logger
        self._metrics_collector = metrics_collector
        self._category = category

    def render(self, asset: Asset, spec: DerivativeSpec, staging: StagingArea) -> Rendition:
        raise NotImplementedError

    def run(
        self,
        asset: Asset,
        spec: DerivativeSpec,
        staging: StagingArea,
        context: Optional[LogContext] = None,
    ) -> DerivativeResult:
        start_time = time.time()
        log_context = (context or LogContext(component="rendition_worker")).with_operation(
            f"render:{spec.variant}"
        )
        self._logger.debug("Rendering derivative", log_context)

        try:
            rendition = self.render(asset, spec, staging)
        except MediaPipelineError as e:
            return self._failed(spec, e.kind, str(e), start_time, log_context)
        except Exception as e:
            return self._failed(spec, ErrorKind.TRANSFORM, str(e), start_time, log_context)

        key = make_key(
            self._category,
            asset.owner_id,
            derived_filename(asset.filename, spec.variant, rendition.extension),
            asset.submitted_at,
        )
        tags = {
            "owner-id": asset.owner_id,
            "type": self.object_type,
            "variant": spec.variant,
            "original-name": asset.filename,
            "processed-at": processed_timestamp(),
            **rendition.tags,
        }

        try:
            stored = self._blob_store.put(key, rendition.data, rendition.content_type, tags)
        except MediaPipelineError as e:
            return self._failed(spec, e.kind, str(e), start_time, log_context)
        except Exception as e:
            return self._failed(spec, ErrorKind.STORAGE, str(e), start_time, log_context)

        processing_time = time.time() - start_time
        if self._metrics_collector:
            self._metrics_collector.record(
                f"render:{spec.variant}", start_time, True, size=len(rendition.data)
            )
        self._logger.info(
            "Stored derivative",
            log_context,
            key=stored.get("key", key),
            size=len(rendition.data),
            processing_time_ms=round(processing_time * 1000, 1),
        )
        return DerivativeResult(
            variant=spec.variant,
            required=spec.required,
            success=True,
            key=stored.get("key", key),
            url=stored.get("url", ""),
            etag=stored.get("etag", ""),
            size=stored.get("size", len(rendition.data)),
            content_type=rendition.content_type,
            metadata=rendition.metadata,
            processing_time=processing_time,
        )

    def _failed(
        self,
        spec: DerivativeSpec,
        kind: ErrorKind,
        message: str,
        start_time: float,
        log_context: LogContext,
    ) -> DerivativeResult:
        if self._metrics_collector:
            self._metrics_collector.record(f"render:{spec.variant}", start_time, False, message)
        log = self._logger.error if spec.required else self._logger.warning
        log("Derivative failed", log_context.with_metadata(error_kind=kind.value, error=message))
        return DerivativeResult(
            variant=spec.variant,
            required=spec.required,
            success=False,
            error_kind=kind,
            error=message,
            processing_time=time.time() - start_time,
        )


def _encoding(spec: DerivativeSpec, expected: type) -> Any:
    if not isinstance(spec.encoding, expected):
        raise TransformError(
            f"Derivative {spec.variant!r} needs a {expected.__name__}, got {type(spec.encoding).__name__}"
        )
    return spec.encoding


def _source_suffix(filename: str) -> str:
    extension = file_extension(filename)
    return "" if extension == UNKNOWN_EXTENSION else f".{extension}"


class PassthroughWorker(BaseRenditionWorker):
    """Stores the uploaded bytes unchanged."""

    object_type = "original_image"

    def render(self, asset: Asset, spec: DerivativeSpec, staging: StagingArea) -> Rendition:
        return Rendition(
            data=asset.data,
            content_type=asset.content_type,
            extension=file_extension(asset.filename),
        )


class ImageResizeWorker(BaseRenditionWorker):
    """Resizes and re-encodes an image in memory."""

    object_type = "processed_image"

    def __init__(self, image_transform: ImageTransformProtocol, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._image_transform = image_transform

    def render(self, asset: Asset, spec: DerivativeSpec, staging: StagingArea) -> Rendition:
        encoding: ImageEncoding = _encoding(spec, ImageEncoding)
        data = self._image_transform.resize(asset.data, encoding)
        info = self._image_transform.describe(data)
        return Rendition(
            data=data,
            content_type=content_type_for(encoding.format),
            extension=extension_for(encoding.format),
            metadata={"width": info.get("width"), "height": info.get("height")},
        )


class VideoTranscodeWorker(BaseRenditionWorker):
    """Transcodes a staged copy of the source video."""

    object_type = "processed_video"

    def __init__(self, video_transform: VideoTransformProtocol, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._video_transform = video_transform

    def render(self, asset: Asset, spec: DerivativeSpec, staging: StagingArea) -> Rendition:
        encoding: VideoEncoding = _encoding(spec, VideoEncoding)
        extension = extension_for(encoding.format)

        with staging.acquire(_source_suffix(asset.filename)) as source, staging.acquire(
            extension
        ) as output:
            source.write_bytes(asset.data)
            info = self._video_transform.transcode(source.path, output.path, encoding)
            data = output.read_bytes()

        duration = info.get("duration_seconds")
        tags = {"duration-seconds": repr(duration)} if duration is not None else {}
        return Rendition(
            data=data,
            content_type=content_type_for(encoding.format),
            extension=extension,
            metadata={"duration_seconds": duration},
            tags=tags,
        )


class VideoThumbnailWorker(BaseRenditionWorker):
    """Captures a single frame from a staged copy of the source video."""

    object_type = "video_thumbnail"

    def __init__(self, video_transform: VideoTransformProtocol, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._video_transform = video_transform

    def render(self, asset: Asset, spec: DerivativeSpec, staging: StagingArea) -> Rendition:
        capture: FrameCapture = _encoding(spec, FrameCapture)
        extension = extension_for(capture.format)

        with staging.acquire(_source_suffix(asset.filename)) as source, staging.acquire(
            extension
        ) as output:
            source.write_bytes(asset.data)
            info = self._video_transform.capture_frame(source.path, output.path, capture) or {}
            data = output.read_bytes()

        return Rendition(
            data=data,
            content_type=content_type_for(capture.format),
            extension=extension,
            metadata=dict(info),
        )


def create_workers(
    blob_store: BlobStoreProtocol,
    image_transform: ImageTransformProtocol,
    video_transform: VideoTransformProtocol,
    logger: LoggerProtocol,
    metrics_collector: Optional[MetricsCollector] = None,
) -> Dict[Operation, RenditionWorker]:
    """One worker per transform operation."""
    shared = (blob_store, logger, metrics_collector)
    return {
        Operation.PASSTHROUGH: PassthroughWorker(*shared),
        Operation.RESIZE: ImageResizeWorker(image_transform, *shared),
        Operation.TRANSCODE: VideoTranscodeWorker(video_transform, *shared),
        Operation.CAPTURE_FRAME: VideoThumbnailWorker(video_transform, *shared),
    }
