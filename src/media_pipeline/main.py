#!/usr/bin/env python3
"""
Media Pipeline CLI

Reads local images and videos, plans their derivatives, renders and uploads
them to the object store, then prints the batch outcome as JSON.
"""

import argparse
import mimetypes
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core import (
    Asset,
    MediaKind,
    MediaPipelineError,
    PipelineConfig,
    ProcessingProfile,
    Submission,
    get_logger,
)
from .core.factories import BlobStoreFactory, ProcessingPipelineFactory
from .core.planner import IMAGE_FORMATS, VIDEO_BITRATES, VIDEO_FORMATS


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the media pipeline.

    Returns:
        An `argparse.Namespace` object containing the parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="media-pipeline",
        description="Derive and store renditions of images and videos",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser("process", help="Process local media files")
    process_parser.add_argument("files", nargs="+", help="Image or video files")
    process_parser.add_argument("--owner-id", required=True, help="Owner of the uploads")
    process_parser.add_argument("--bucket", help="Destination bucket (default: from env)")
    process_parser.add_argument(
        "--quality", type=int, default=None, help="Image quality 1-100 (default: 85)"
    )
    process_parser.add_argument(
        "--format",
        dest="image_format",
        choices=sorted(IMAGE_FORMATS),
        default=None,
        help="Image output format (default: jpeg)",
    )
    process_parser.add_argument(
        "--resize",
        default=None,
        help='Resize override as JSON, e.g. \'{"width": 640, "fit": "inside"}\'',
    )
    process_parser.add_argument(
        "--video-quality",
        choices=list(VIDEO_BITRATES),
        default=None,
        help="Video quality preset (default: medium)",
    )
    process_parser.add_argument(
        "--video-format",
        choices=list(VIDEO_FORMATS),
        default=None,
        help="Video container (default: mp4)",
    )
    process_parser.add_argument(
        "--no-thumbnail", action="store_true", help="Skip video thumbnails"
    )
    process_parser.add_argument(
        "--strategy",
        choices=["serial", "multithread"],
        default=None,
        help="File-level processing strategy (default: multithread)",
    )
    process_parser.add_argument(
        "--max-workers", type=int, default=None, help="Concurrent rendition workers"
    )
    process_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sign_parser = subparsers.add_parser("sign", help="Create a presigned URL")
    sign_parser.add_argument("key", help="Object key")
    sign_parser.add_argument("--upload", action="store_true", help="Sign an upload URL")
    sign_parser.add_argument("--content-type", default=None, help="Upload content type")
    sign_parser.add_argument("--ttl", type=int, default=None, help="Expiry in seconds")
    sign_parser.add_argument("--bucket", help="Bucket (default: from env)")

    subparsers.add_parser("version", help="Show version information")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)
    return args


def profile_for(kind: MediaKind, args: argparse.Namespace) -> ProcessingProfile:
    """Processing profile for one file, picked by its kind."""
    if kind == MediaKind.VIDEO:
        return ProcessingProfile(
            quality=args.video_quality,
            format=args.video_format,
            generate_thumbnail=not args.no_thumbnail,
        )
    return ProcessingProfile(
        quality=args.quality, format=args.image_format, resize=args.resize
    )


def load_submissions(args: argparse.Namespace) -> List[Submission]:
    """Read each file from disk into a Submission."""
    submissions = []
    for name in args.files:
        path = Path(name)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        asset = Asset(
            data=path.read_bytes(),
            content_type=content_type,
            owner_id=args.owner_id,
            filename=path.name,
            submitted_at=datetime.now(timezone.utc),
        )
        submissions.append(Submission(asset=asset, profile=profile_for(asset.kind, args)))
    return submissions


def _config_from_args(args: argparse.Namespace) -> PipelineConfig:
    overrides = {
        "bucket": getattr(args, "bucket", None),
        "strategy": getattr(args, "strategy", None),
        "max_workers": getattr(args, "max_workers", None),
        "debug": getattr(args, "debug", None) or None,
    }
    return PipelineConfig.from_env(**{k: v for k, v in overrides.items() if v is not None})


def run_process(args: argparse.Namespace) -> int:
    """Process the files given on the command line; returns the exit code."""
    logger = get_logger("cli")
    config = _config_from_args(args)
    submissions = load_submissions(args)
    logger.info(f"Processing {len(submissions)} file(s) into bucket {config.bucket}")

    with ProcessingPipelineFactory.create_coordinator(config) as coordinator:
        pipeline = ProcessingPipelineFactory.create_pipeline(config, coordinator=coordinator)
        batch = pipeline.process_many(submissions)

    print(batch.model_dump_json(indent=2))
    return 0 if batch.failed == 0 else 1


def run_sign(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    blob_store = BlobStoreFactory.create_blob_store(config)
    print(blob_store.sign(args.key, ttl=args.ttl, upload=args.upload, content_type=args.content_type))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point of the ``media-pipeline`` command."""
    args = parse_args(argv)

    if args.command == "version":
        print("Media Pipeline CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    try:
        if args.command == "process":
            exit_code = run_process(args)
        else:
            exit_code = run_sign(args)
    except (MediaPipelineError, OSError) as e:
        get_logger("cli").error(f"{type(e).__name__}: {e}")
        exit_code = 2
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
