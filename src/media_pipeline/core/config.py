"""Pipeline configuration."""

import os
import tempfile
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .logging_config import get_logger

DEFAULT_BUCKET = "media-pipeline"


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


class PipelineConfig(BaseModel):
    """Configuration for the rendition pipeline and its object store."""

    bucket: str = DEFAULT_BUCKET
    endpoint_url: Optional[str] = None
    region: str = "auto"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    account_id: Optional[str] = None
    public_url: Optional[str] = None
    max_workers: int = Field(default=4, ge=1)
    max_concurrent_files: int = Field(default=2, ge=1)
    strategy: Literal["serial", "multithread"] = "multithread"
    staging_dir: str = Field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "media-pipeline")
    )
    signed_url_ttl: int = Field(default=3600, ge=1)
    cache_control: str = "public, max-age=31536000"
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    transform_timeout: float = Field(default=600.0, gt=0)
    debug: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "PipelineConfig":
        """
        Build a configuration from environment variables.

        Object store settings use the R2_* names with CLOUDFLARE_* fallbacks;
        pipeline tunables use MEDIA_PIPELINE_*. Explicit keyword overrides win.

        Raises:
            ConfigurationError: If a tunable has an invalid value
        """
        env = os.environ if env is None else env
        values = {
            "bucket": _first(env, "R2_BUCKET_NAME", "CLOUDFLARE_R2_BUCKET"),
            "endpoint_url": _first(env, "R2_ENDPOINT", "CLOUDFLARE_R2_ENDPOINT"),
            "access_key_id": _first(env, "R2_ACCESS_KEY_ID", "CLOUDFLARE_ACCESS_KEY_ID"),
            "secret_access_key": _first(
                env, "R2_SECRET_ACCESS_KEY", "CLOUDFLARE_SECRET_ACCESS_KEY"
            ),
            "account_id": _first(env, "R2_ACCOUNT_ID", "CLOUDFLARE_ACCOUNT_ID"),
            "public_url": _first(env, "R2_PUBLIC_URL", "CLOUDFLARE_R2_PUBLIC_URL"),
            "max_workers": env.get("MEDIA_PIPELINE_MAX_WORKERS"),
            "max_concurrent_files": env.get("MEDIA_PIPELINE_MAX_FILES"),
            "strategy": env.get("MEDIA_PIPELINE_STRATEGY"),
            "staging_dir": env.get("MEDIA_PIPELINE_STAGING_DIR"),
            "signed_url_ttl": env.get("MEDIA_PIPELINE_SIGNED_URL_TTL"),
            "ffmpeg_binary": env.get("FFMPEG_BINARY"),
            "ffprobe_binary": env.get("FFPROBE_BINARY"),
            "transform_timeout": env.get("MEDIA_PIPELINE_TRANSFORM_TIMEOUT"),
        }
        values = {k: v for k, v in values.items() if v is not None}
        values.update(overrides)

        try:
            config = cls(**values)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid pipeline configuration: {e}") from e

        if not config.has_credentials:
            get_logger("config").warning(
                "Missing object store credentials - falling back to the default "
                "boto3 credential chain"
            )
        return config
