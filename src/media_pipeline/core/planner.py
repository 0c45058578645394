"""Derivative planning: which renditions an asset gets, and how they are encoded."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .exceptions import ValidationError
from .models import (
    DerivativeSpec,
    FrameCapture,
    ImageEncoding,
    MediaKind,
    Operation,
    ProcessingProfile,
    VideoEncoding,
)

DEFAULT_IMAGE_QUALITY = 85
DEFAULT_IMAGE_FORMAT = "jpeg"
DEFAULT_VIDEO_PRESET = "medium"
DEFAULT_VIDEO_FORMAT = "mp4"

THUMBNAIL_SIZE = 300
MEDIUM_WIDTH = 800
LARGE_WIDTH = 1200

VIDEO_CODEC = "libx264"
VIDEO_BITRATES = {"low": "500k", "medium": "1000k", "high": "2000k"}
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "128k"
VIDEO_THUMBNAIL_WIDTH = 320
VIDEO_THUMBNAIL_HEIGHT = 240
VIDEO_THUMBNAIL_POSITION = 0.5

IMAGE_FORMATS = {"jpeg": "jpeg", "jpg": "jpeg", "png": "png", "webp": "webp"}
VIDEO_FORMATS = ("mp4", "mov", "mkv")
RESIZE_FITS = ("cover", "contain", "fill", "inside")


@dataclass(frozen=True)
class ResizeOverride:
    """Caller supplied resize box, applied to resizable derivatives only."""

    width: Optional[int] = None
    height: Optional[int] = None
    fit: Optional[str] = None

    def apply(self, encoding: ImageEncoding) -> ImageEncoding:
        width = encoding.width
        if self.width is not None:
            width = min(width, self.width) if width else self.width
        return encoding.model_copy(
            update={
                "width": width,
                "height": self.height if self.height is not None else encoding.height,
                "fit": self.fit or encoding.fit,
            }
        )


def _positive_int(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise ValidationError(f"resize.{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ValidationError(f"resize.{name} must be positive, got {value!r}")
    return int(value)


def parse_resize(raw: Optional[Union[str, Dict[str, Any]]]) -> Optional[ResizeOverride]:
    """
    Parse a resize override from a JSON string or mapping.

    Raises:
        ValidationError: If the value is not valid JSON, not an object, or
            contains invalid dimensions or an unknown fit
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"resize is not valid JSON: {e}") from e
        if raw is None:
            return None
    if not isinstance(raw, dict):
        raise ValidationError(f"resize must be an object, got {type(raw).__name__}")

    fit = raw.get("fit")
    if fit is not None and fit not in RESIZE_FITS:
        raise ValidationError(
            f"resize.fit must be one of {', '.join(RESIZE_FITS)}, got {fit!r}"
        )
    return ResizeOverride(
        width=_positive_int("width", raw.get("width")),
        height=_positive_int("height", raw.get("height")),
        fit=fit,
    )


def _image_quality(value: Optional[Union[int, str]]) -> int:
    if value is None or value == "":
        return DEFAULT_IMAGE_QUALITY
    try:
        quality = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Image quality must be an integer, got {value!r}") from None
    if not 1 <= quality <= 100:
        raise ValidationError(f"Image quality must be between 1 and 100, got {quality}")
    return quality


def _image_format(value: Optional[str]) -> str:
    if not value:
        return DEFAULT_IMAGE_FORMAT
    fmt = IMAGE_FORMATS.get(value.lower())
    if fmt is None:
        raise ValidationError(f"Unsupported image format: {value!r}")
    return fmt


def _video_bitrate(value: Optional[Union[int, str]]) -> str:
    if value is None or value == "":
        return VIDEO_BITRATES[DEFAULT_VIDEO_PRESET]
    preset = str(value).lower()
    if preset not in VIDEO_BITRATES:
        raise ValidationError(
            f"Video quality must be one of {', '.join(VIDEO_BITRATES)}, got {value!r}"
        )
    return VIDEO_BITRATES[preset]


def _video_format(value: Optional[str]) -> str:
    if not value:
        return DEFAULT_VIDEO_FORMAT
    if value.lower() not in VIDEO_FORMATS:
        raise ValidationError(f"Unsupported video format: {value!r}")
    return value.lower()


class DerivativePlanner:
    """Turns an asset kind and a profile into an ordered list of derivatives."""

    def plan(
        self, kind: MediaKind, profile: Optional[ProcessingProfile] = None
    ) -> List[DerivativeSpec]:
        """
        Plan the derivatives for an asset.

        Raises:
            ValidationError: For an unsupported kind or a malformed profile
        """
        profile = profile or ProcessingProfile()
        if kind == MediaKind.IMAGE:
            return self._plan_image(profile)
        if kind == MediaKind.VIDEO:
            return self._plan_video(profile)
        raise ValidationError(f"Unsupported file type: {kind.value}")

    def _plan_image(self, profile: ProcessingProfile) -> List[DerivativeSpec]:
        quality = _image_quality(profile.quality)
        fmt = _image_format(profile.format)
        override = parse_resize(profile.resize)

        specs = [
            DerivativeSpec(variant="original", operation=Operation.PASSTHROUGH, order=0),
            DerivativeSpec(
                variant="thumbnail",
                operation=Operation.RESIZE,
                order=1,
                encoding=ImageEncoding(
                    width=THUMBNAIL_SIZE,
                    height=THUMBNAIL_SIZE,
                    fit="cover",
                    quality=quality,
                    format=fmt,
                    without_enlargement=False,
                ),
            ),
        ]
        for order, (variant, width) in enumerate(
            (("medium", MEDIUM_WIDTH), ("large", LARGE_WIDTH)), start=2
        ):
            encoding = ImageEncoding(width=width, fit="inside", quality=quality, format=fmt)
            if override is not None:
                encoding = override.apply(encoding)
            specs.append(
                DerivativeSpec(
                    variant=variant,
                    operation=Operation.RESIZE,
                    order=order,
                    resizable=True,
                    encoding=encoding,
                )
            )
        return specs

    def _plan_video(self, profile: ProcessingProfile) -> List[DerivativeSpec]:
        specs = [
            DerivativeSpec(
                variant="transcoded",
                operation=Operation.TRANSCODE,
                order=0,
                encoding=VideoEncoding(
                    codec=VIDEO_CODEC,
                    bitrate=_video_bitrate(profile.quality),
                    audio_codec=AUDIO_CODEC,
                    audio_bitrate=AUDIO_BITRATE,
                    format=_video_format(profile.format),
                ),
            )
        ]
        if profile.generate_thumbnail:
            specs.append(
                DerivativeSpec(
                    variant="video-thumbnail",
                    operation=Operation.CAPTURE_FRAME,
                    order=1,
                    required=False,
                    encoding=FrameCapture(
                        timestamp_fraction=VIDEO_THUMBNAIL_POSITION,
                        width=VIDEO_THUMBNAIL_WIDTH,
                        height=VIDEO_THUMBNAIL_HEIGHT,
                    ),
                )
            )
        return specs


def plan(kind: MediaKind, profile: Optional[ProcessingProfile] = None) -> List[DerivativeSpec]:
    """Plan derivatives with the default planner."""
    return DerivativePlanner().plan(kind, profile)
