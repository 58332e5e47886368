"""Configuration schema for mdpublish.

Defines Pydantic models for the persisted project config file: the
``remote`` section (adapter selection and connection settings), discovery
settings, logging, and the list of tracked documents.

The file uses camelCase keys::

    searchPath: ["docs"]
    include: ["*.md"]
    outputPath: build/html
    defaultTags: [docs]
    remote:
      adapter: jive
      baseUrl: https://jive.example.com/api/core/v3
      username: ${MDPUBLISH_USERNAME}
      password: ${MDPUBLISH_PASSWORD}
      requestTimeout: 60
      supportsNativeMarkdown: false
      defaultExtraProps:
        jiveParentUri: https://jive.example.com/groups/engineering
    metadata:
    - sourcePath: docs/README.md
      title: README.md

Usage:
    from mdpublish.config_schema import build_config

    config = build_config(raw_yaml_dict)
"""

from __future__ import annotations

import logging

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .exceptions import ConfigurationError
from .sync.models import DocumentMetadata

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RemoteConfig(BaseModel):
    """Remote service connection settings.

    Credentials are optional here: env vars and CLI args can supply them at
    runtime, and each adapter decides which ones it requires.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    adapter: str = Field(
        default="noop",
        validation_alias=AliasChoices("adapter", "class"),
        description="Remote adapter label (see mdpublish.remotes.REMOTE_REGISTRY)",
    )
    base_url: str | None = Field(default=None, description="Remote API base URL")
    username: str | None = Field(default=None, description="Basic auth username")
    password: str | None = Field(default=None, description="Basic auth password")
    token: str | None = Field(default=None, description="Bearer token")
    request_timeout: int = Field(
        default=30,
        ge=1,
        le=600,
        description="Connect/read timeout per HTTP call, in seconds",
    )
    supports_native_markdown: bool = Field(
        default=False,
        description="Remote renders markdown itself; skip HTML conversion",
    )
    default_tags: list[str] = Field(default_factory=list)
    default_extra_props: dict[str, str] = Field(default_factory=dict)

    @field_validator("adapter")
    @classmethod
    def _known_adapter(cls, value: str) -> str:
        # Imported here to avoid a circular import (remotes -> context -> config_schema)
        from .remotes import REMOTE_REGISTRY

        label = value.strip().lower()
        if label not in REMOTE_REGISTRY:
            raise ValueError(
                f"Unknown remote adapter '{value}'. "
                f"Expected one of: {', '.join(sorted(REMOTE_REGISTRY))}"
            )
        return label


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level project config
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Top-level project configuration, persisted between runs.

    Every section has sensible defaults, so ``ProjectConfig()`` (zero-config)
    is always valid.  ``metadata`` is mutated during runs and saved back.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search_path: list[str] = Field(default_factory=lambda: ["."])
    include: list[str] = Field(default_factory=lambda: ["*.md"])
    exclude: list[str] = Field(default_factory=list)
    output_path: str | None = None
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    default_tags: list[str] = Field(default_factory=list)
    retry_failed: bool = Field(
        default=False,
        description="Keep the old checksum when a remote call fails so the "
        "document is retried on the next run",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metadata: list[DocumentMetadata] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict | None) -> ProjectConfig:
    """Construct a ``ProjectConfig`` from a raw dict loaded from YAML.

    Handles missing sections gracefully: anything absent gets defaults.

    Raises:
        ConfigurationError: If the data does not match the schema.
    """
    if not raw_data:
        return ProjectConfig()

    try:
        return ProjectConfig.model_validate(raw_data)
    except ValidationError as exc:
        logger.debug("Config validation failed: %s", exc)
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
