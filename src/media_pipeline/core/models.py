"""Shared data models for the media pipeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .exceptions import ErrorKind

IMAGE_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp"}
)
VIDEO_CONTENT_TYPES = frozenset(
    {
        "video/mp4",
        "video/webm",
        "video/ogg",
        "video/avi",
        "video/mov",
        "video/quicktime",
    }
)

FORMAT_CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
}
FORMAT_EXTENSIONS = {"jpeg": "jpg"}


def content_type_for(fmt: str) -> str:
    """MIME type of an output format."""
    return FORMAT_CONTENT_TYPES.get(fmt, "application/octet-stream")


def extension_for(fmt: str) -> str:
    """File extension used for keys of an output format."""
    return FORMAT_EXTENSIONS.get(fmt, fmt)


class MediaKind(str, Enum):
    """Kind of an uploaded asset, derived from its declared MIME type."""

    IMAGE = "image"
    VIDEO = "video"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_content_type(cls, content_type: str) -> "MediaKind":
        normalized = (content_type or "").split(";")[0].strip().lower()
        if normalized in IMAGE_CONTENT_TYPES:
            return cls.IMAGE
        if normalized in VIDEO_CONTENT_TYPES:
            return cls.VIDEO
        return cls.UNSUPPORTED


class Asset(BaseModel):
    """An uploaded file submitted for processing."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    content_type: str
    owner_id: str
    filename: str
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def kind(self) -> MediaKind:
        return MediaKind.from_content_type(self.content_type)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def timestamp_ms(self) -> int:
        return int(self.submitted_at.timestamp() * 1000)


class ProcessingProfile(BaseModel):
    """
    Caller supplied processing options.

    ``quality`` is an integer (1-100) for images and a preset name
    (low, medium, high) for videos. ``resize`` may be a JSON string as
    received from a form field, or an already decoded mapping.
    """

    quality: Optional[Union[int, str]] = None
    format: Optional[str] = None
    resize: Optional[Union[str, Dict[str, Any]]] = None
    generate_thumbnail: bool = True


class Operation(str, Enum):
    """Transform a rendition worker applies to produce a derivative."""

    PASSTHROUGH = "passthrough"
    RESIZE = "resize"
    TRANSCODE = "transcode"
    CAPTURE_FRAME = "capture_frame"


class ImageEncoding(BaseModel):
    """Target encoding of a resized image."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    width: Optional[int] = None
    height: Optional[int] = None
    fit: str = "inside"
    quality: int = 85
    format: str = "jpeg"
    without_enlargement: bool = True


class VideoEncoding(BaseModel):
    """Target encoding of a transcoded video."""

    model_config = ConfigDict(frozen=True)

    type: Literal["video"] = "video"
    codec: str = "libx264"
    bitrate: str = "1000k"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    format: str = "mp4"


class FrameCapture(BaseModel):
    """Single frame grabbed from a video."""

    model_config = ConfigDict(frozen=True)

    type: Literal["frame"] = "frame"
    timestamp_fraction: float = 0.5
    width: int = 320
    height: int = 240
    format: str = "jpeg"


Encoding = Annotated[
    Union[ImageEncoding, VideoEncoding, FrameCapture], Field(discriminator="type")
]


class DerivativeSpec(BaseModel):
    """One planned output of an asset."""

    model_config = ConfigDict(frozen=True)

    variant: str
    operation: Operation
    order: int
    required: bool = True
    resizable: bool = False
    encoding: Optional[Encoding] = None


class DerivativeResult(BaseModel):
    """Outcome of running one rendition worker."""

    model_config = ConfigDict(frozen=True)

    variant: str
    required: bool = True
    success: bool = False
    key: str = ""
    url: str = ""
    etag: str = ""
    size: int = 0
    content_type: str = ""
    error_kind: Optional[ErrorKind] = None
    error: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    processing_time: float = 0.0


class PipelineState(str, Enum):
    """
    States a single file moves through in the coordinator.

    FAILED is set by the batch strategy when the coordinator itself raised.
    """

    PLANNING = "planning"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    FINALIZING = "finalizing"
    DONE = "done"
    REJECTED = "rejected"
    FAILED = "failed"


class FileOutcome(BaseModel):
    """Aggregated result for one asset."""

    filename: str
    owner_id: str = ""
    kind: MediaKind = MediaKind.UNSUPPORTED
    state: PipelineState = PipelineState.DONE
    success: bool = False
    rejection_reason: str = ""
    error: str = ""
    derivatives: List[DerivativeResult] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    processing_time: float = 0.0

    @property
    def rejected(self) -> bool:
        return self.state == PipelineState.REJECTED

    @property
    def partial(self) -> bool:
        """Successful overall, but at least one best-effort derivative failed."""
        return self.success and any(not d.success for d in self.derivatives)

    @property
    def failed_derivatives(self) -> List[DerivativeResult]:
        return [d for d in self.derivatives if not d.success]

    def get(self, variant: str) -> Optional[DerivativeResult]:
        for derivative in self.derivatives:
            if derivative.variant == variant:
                return derivative
        return None


class BatchOutcome(BaseModel):
    """Terminal artifact of a batch run, in submission order."""

    results: List[FileOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return len(self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return self.total - self.successful


class Submission(BaseModel):
    """An asset and the profile it should be processed with."""

    asset: Asset
    profile: ProcessingProfile = Field(default_factory=ProcessingProfile)
