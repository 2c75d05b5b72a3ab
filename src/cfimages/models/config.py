"""Pydantic configuration models for cfimages."""

import logging
import os
import re
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_VARIANT = "/public"

# Environment variables read by ImagesConfig.from_env()
ENV_ACCOUNT_ID = "CF_ACCOUNT_ID"
ENV_API_TOKEN = "CF_API_TOKEN"
ENV_ACCOUNT_HASH = "CF_ACCOUNT_HASH"
ENV_DEFAULT_VARIANT = "CF_DEFAULT_VARIANT"

# Match $VAR or ${VAR}
ENV_REFERENCE_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

# Listing and deleting need only these; uploads also need the account hash
API_CREDENTIALS = ("account_id", "api_token")
UPLOAD_CREDENTIALS = ("account_id", "api_token", "account_hash")


def _expand_env_var(value: Optional[str]) -> Optional[str]:
    """Expand environment variable references in a string.

    Supports $VAR and ${VAR} syntax. Returns original value if
    the env var is not set.
    """
    if value is None:
        return None

    def replace(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        return os.environ.get(var_name, match.group(0))

    return ENV_REFERENCE_PATTERN.sub(replace, value)


class ImagesConfig(BaseModel):
    """Credentials and delivery settings for the Cloudflare Images API.

    The API token supports environment variable expansion using $VAR or
    ${VAR} syntax, so config files never need to contain the secret:
        images:
          api_token: $CF_API_TOKEN
    """

    account_id: Optional[str] = Field(None, description="Cloudflare account identifier")
    api_token: Optional[str] = Field(None, description="API token with Images:Edit permission")
    account_hash: Optional[str] = Field(
        None,
        description="Account hash used in delivery URLs (from the Images dashboard)",
    )
    default_variant: str = Field(DEFAULT_VARIANT, description="Delivery variant path, e.g. /public")

    model_config = {"extra": "forbid"}

    def model_post_init(self, __context: object) -> None:
        """Expand environment variables and normalize blanks after init.

        A token still holding a $VAR reference after expansion names an
        unset variable and is treated as missing.
        """
        if self.api_token:
            token = _expand_env_var(self.api_token)
            if token and ENV_REFERENCE_PATTERN.search(token):
                logger.warning("api_token references an unset environment variable; treating it as missing")
                token = None
            object.__setattr__(self, "api_token", token)
        for name in ("account_id", "api_token", "account_hash"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                object.__setattr__(self, name, None)
        if not self.default_variant or not self.default_variant.strip():
            object.__setattr__(self, "default_variant", DEFAULT_VARIANT)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ImagesConfig":
        """Build config from CF_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            account_id=env.get(ENV_ACCOUNT_ID),
            api_token=env.get(ENV_API_TOKEN),
            account_hash=env.get(ENV_ACCOUNT_HASH),
            default_variant=env.get(ENV_DEFAULT_VARIANT) or DEFAULT_VARIANT,
        )

    def missing_fields(self, required: tuple[str, ...] = UPLOAD_CREDENTIALS) -> list[str]:
        """Names of required credentials that are not set."""
        return [name for name in required if not getattr(self, name)]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def require_credentials(self, required: tuple[str, ...] = UPLOAD_CREDENTIALS) -> None:
        """Fail closed when any required credential is missing.

        The default covers uploads, which need the account hash to build
        delivery URLs.

        Raises:
            ConfigError: Listing the missing settings
        """
        missing = self.missing_fields(required)
        if missing:
            raise ConfigError(
                "Please configure Cloudflare credentials (missing: " + ", ".join(missing) + ")",
                missing=missing,
            )

    def require_api_credentials(self) -> None:
        """Fail closed when the account id or API token is missing.

        Raises:
            ConfigError: Listing the missing settings
        """
        self.require_credentials(API_CREDENTIALS)


class CacheConfig(BaseModel):
    """Configuration for the upload deduplication cache."""

    path: Path = Field(
        Path("~/.cfimages/state.json"),
        description="JSON state file the cache is persisted in",
    )
    ttl_days: Optional[int] = Field(
        30,
        ge=1,
        description="Days before cache entries expire (None = no expiry)",
    )

    model_config = {"extra": "forbid"}

    @property
    def resolved_path(self) -> Path:
        return self.path.expanduser()


class DeleteConfig(BaseModel):
    """Configuration for bulk deletion of recent uploads."""

    days: int = Field(7, ge=1, description="Delete images uploaded within this many days")
    per_page: int = Field(100, ge=1, description="Page size used when listing images")

    model_config = {"extra": "forbid"}


class AppConfig(BaseModel):
    """
    Root configuration model for cfimages.

    Example:
        config = AppConfig(images=ImagesConfig.from_env())

    YAML format:
        images:
          account_id: 0123abcd
          api_token: $CF_API_TOKEN
          account_hash: AbCdEf
          default_variant: /public
        cache:
          path: ~/.cfimages/state.json
          ttl_days: 30
        delete:
          days: 7
    """

    images: ImagesConfig = Field(default_factory=ImagesConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    delete: DeleteConfig = Field(default_factory=DeleteConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "WARNING",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "AppConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "AppConfig":
        """Load config from YAML file."""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))

    def with_env_defaults(self, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Fill credentials missing from this config with CF_* environment values."""
        env_images = ImagesConfig.from_env(environ)
        merged = {
            name: getattr(self.images, name) or getattr(env_images, name)
            for name in ("account_id", "api_token", "account_hash")
        }
        merged["default_variant"] = (
            self.images.default_variant
            if "default_variant" in self.images.model_fields_set
            else env_images.default_variant
        )
        return self.model_copy(update={"images": ImagesConfig(**merged)})
