"""Factory classes for creating configured service instances."""

from typing import Any, Optional

import boto3
from botocore.config import Config

from .config import PipelineConfig
from .image_utils import PillowImageTransform
from .observability import MetricsCollector, create_logger
from .protocols import (
    BlobStoreProtocol,
    ImageTransformProtocol,
    LoggerProtocol,
    S3ClientProtocol,
    VideoTransformProtocol,
)
from .services import BatchAggregator, PipelineCoordinator
from .storage import S3BlobStore
from .video_utils import FfmpegVideoTransform
from .workers import create_workers


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(config: PipelineConfig, **kwargs: Any) -> S3ClientProtocol:
        """Create an S3 (or R2) client from the pipeline configuration."""
        session = boto3.Session(
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
        )
        client_config = Config(
            max_pool_connections=max(10, config.max_workers * 2),
            s3={"addressing_style": "virtual"},
        )
        return session.client(  # type: ignore
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            config=client_config,
            **kwargs,
        )


class BlobStoreFactory:
    """Factory for the object store adapter."""

    @staticmethod
    def create_blob_store(
        config: PipelineConfig, s3_client: Optional[S3ClientProtocol] = None
    ) -> S3BlobStore:
        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client(config)
        return S3BlobStore(
            s3_client,
            bucket=config.bucket,
            public_url=config.public_url,
            endpoint_url=config.endpoint_url,
            account_id=config.account_id,
            cache_control=config.cache_control,
            default_ttl=config.signed_url_ttl,
        )


class ProcessingPipelineFactory:
    """Factory for creating the complete rendition pipeline."""

    @staticmethod
    def create_coordinator(
        config: Optional[PipelineConfig] = None,
        blob_store: Optional[BlobStoreProtocol] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        image_transform: Optional[ImageTransformProtocol] = None,
        video_transform: Optional[VideoTransformProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> PipelineCoordinator:
        """Create a coordinator; any collaborator not given is built from config."""
        config = config or PipelineConfig()

        if blob_store is None:
            blob_store = BlobStoreFactory.create_blob_store(config, s3_client)
        if image_transform is None:
            image_transform = PillowImageTransform()
        if video_transform is None:
            video_transform = FfmpegVideoTransform(
                ffmpeg_binary=config.ffmpeg_binary,
                ffprobe_binary=config.ffprobe_binary,
                timeout=config.transform_timeout,
            )
        if logger is None:
            logger = create_logger("media_pipeline", debug=config.debug)

        workers = create_workers(
            blob_store, image_transform, video_transform, logger, metrics_collector
        )
        return PipelineCoordinator(
            workers,
            logger,
            staging_dir=config.staging_dir,
            max_workers=config.max_workers,
        )

    @staticmethod
    def create_pipeline(
        config: Optional[PipelineConfig] = None,
        coordinator: Optional[PipelineCoordinator] = None,
        logger: Optional[LoggerProtocol] = None,
        **collaborators: Any,
    ) -> BatchAggregator:
        """Create a batch aggregator over a (possibly newly built) coordinator."""
        config = config or PipelineConfig()
        if logger is None:
            logger = create_logger("media_pipeline", debug=config.debug)
        if coordinator is None:
            coordinator = ProcessingPipelineFactory.create_coordinator(
                config, logger=logger, **collaborators
            )
        return BatchAggregator(
            coordinator,
            logger,
            strategy=config.strategy,
            max_concurrent_files=config.max_concurrent_files,
        )
