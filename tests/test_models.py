"""Tests for data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from media_pipeline.core.exceptions import ErrorKind
from media_pipeline.core.models import (
    Asset,
    BatchOutcome,
    DerivativeResult,
    DerivativeSpec,
    FileOutcome,
    ImageEncoding,
    MediaKind,
    Operation,
    PipelineState,
    content_type_for,
    extension_for,
)


class TestMediaKind:
    """Tests for MediaKind classification."""

    @pytest.mark.parametrize(
        "content_type",
        ["image/jpeg", "image/png", "image/gif", "image/webp", "IMAGE/JPEG", "image/png; q=1"],
    )
    def test_images(self, content_type):
        assert MediaKind.from_content_type(content_type) == MediaKind.IMAGE

    @pytest.mark.parametrize(
        "content_type",
        ["video/mp4", "video/webm", "video/ogg", "video/avi", "video/mov", "video/quicktime"],
    )
    def test_videos(self, content_type):
        assert MediaKind.from_content_type(content_type) == MediaKind.VIDEO

    @pytest.mark.parametrize("content_type", ["application/pdf", "image/tiff", "", "text/plain"])
    def test_unsupported(self, content_type):
        assert MediaKind.from_content_type(content_type) == MediaKind.UNSUPPORTED


class TestAsset:
    """Tests for Asset."""

    def test_derived_properties(self):
        submitted = datetime(2024, 5, 1, tzinfo=timezone.utc)
        asset = Asset(
            data=b"12345",
            content_type="video/mp4",
            owner_id="u1",
            filename="clip.mp4",
            submitted_at=submitted,
        )

        assert asset.kind == MediaKind.VIDEO
        assert asset.size == 5
        assert asset.timestamp_ms == int(submitted.timestamp() * 1000)

    def test_is_immutable_and_hides_bytes_in_repr(self):
        asset = Asset(data=b"secret", content_type="image/png", owner_id="u1", filename="a.png")

        assert "secret" not in repr(asset)
        with pytest.raises(PydanticValidationError):
            asset.filename = "b.png"


class TestDerivativeSpec:
    """Tests for DerivativeSpec encoding discrimination."""

    def test_encoding_is_parsed_by_type(self):
        spec = DerivativeSpec.model_validate(
            {
                "variant": "medium",
                "operation": "resize",
                "order": 2,
                "encoding": {"type": "image", "width": 800},
            }
        )
        assert spec.operation == Operation.RESIZE
        assert isinstance(spec.encoding, ImageEncoding)
        assert spec.encoding.width == 800


class TestOutcomes:
    """Tests for FileOutcome and BatchOutcome."""

    def _outcome(self, success=True, optional_failed=False):
        derivatives = [
            DerivativeResult(variant="transcoded", success=success, key="k1"),
            DerivativeResult(
                variant="video-thumbnail",
                required=False,
                success=not optional_failed,
                error_kind=ErrorKind.TRANSFORM if optional_failed else None,
            ),
        ]
        return FileOutcome(
            filename="clip.mp4", kind=MediaKind.VIDEO, success=success, derivatives=derivatives
        )

    def test_partial_success(self):
        outcome = self._outcome(optional_failed=True)

        assert outcome.success
        assert outcome.partial
        assert [d.variant for d in outcome.failed_derivatives] == ["video-thumbnail"]
        assert outcome.get("transcoded").key == "k1"
        assert outcome.get("missing") is None

    def test_rejected(self):
        outcome = FileOutcome(
            filename="a.pdf", state=PipelineState.REJECTED, rejection_reason="Unsupported"
        )
        assert outcome.rejected
        assert not outcome.success
        assert outcome.derivatives == []

    def test_batch_counts_are_serialized(self):
        batch = BatchOutcome(
            results=[self._outcome(), self._outcome(success=False), self._outcome()]
        )

        assert (batch.total, batch.successful, batch.failed) == (3, 2, 1)
        dumped = batch.model_dump(mode="json")
        assert dumped["total"] == 3
        assert dumped["failed"] == 1
        assert dumped["results"][0]["derivatives"][0]["variant"] == "transcoded"

    def test_empty_batch(self):
        batch = BatchOutcome()
        assert (batch.total, batch.successful, batch.failed) == (0, 0, 0)


@pytest.mark.parametrize(
    "fmt, content_type, extension",
    [
        ("jpeg", "image/jpeg", "jpg"),
        ("png", "image/png", "png"),
        ("webp", "image/webp", "webp"),
        ("mp4", "video/mp4", "mp4"),
        ("mov", "video/quicktime", "mov"),
        ("bin", "application/octet-stream", "bin"),
    ],
)
def test_format_mappings(fmt, content_type, extension):
    assert content_type_for(fmt) == content_type
    assert extension_for(fmt) == extension
