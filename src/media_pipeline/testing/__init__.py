"""Testing utilities and fakes for the media pipeline."""

from .fakes import (
    CountingImageTransform,
    FakeLogger,
    FakeS3Client,
    FakeVideoTransform,
    S3Bucket,
    S3Object,
    create_stubbed_s3_client,
    create_test_image,
    setup_test_s3_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeLogger",
    "FakeVideoTransform",
    "CountingImageTransform",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "create_stubbed_s3_client",
    "setup_test_s3_environment",
]
