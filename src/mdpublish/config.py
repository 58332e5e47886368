"""Remote connection settings resolution.

Connection settings can come from CLI args, environment variables,
.env files, and the project YAML config file.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    MDPUBLISH_URL: Remote API base URL
    MDPUBLISH_USERNAME: Basic auth username
    MDPUBLISH_PASSWORD: Basic auth password
    MDPUBLISH_TOKEN: Bearer token (used instead of username/password)
    MDPUBLISH_TIMEOUT: Per-request timeout in seconds (1-600)
"""

import logging
import os
from urllib.parse import urlparse

from .config_schema import RemoteConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def validate_base_url(url: str) -> str:
    """Validate a remote base URL and return it normalized.

    Args:
        url: URL to validate.

    Returns:
        The URL stripped of whitespace and any trailing slash.

    Raises:
        ConfigurationError: If URL format is invalid.
    """
    url = url.strip()

    if not url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid remote URL '{url}': must start with http:// or https://"
        )

    parsed = urlparse(url)
    if not parsed.hostname:
        raise ConfigurationError(
            f"Invalid remote URL '{url}': URL must include a hostname"
        )

    # Strip trailing slash after validation (safe now that scheme/host are verified)
    return url.removesuffix("/")


def resolve_remote_config(
    remote: RemoteConfig,
    url: str | None = None,
    username: str | None = None,
    password: str | None = None,
    token: str | None = None,
) -> RemoteConfig:
    """Apply CLI and environment overrides on top of the YAML remote config.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > YAML value

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        remote: Remote section from the project config.
        url: Override base URL.
        username: Override username.
        password: Override password.
        token: Override bearer token.

    Returns:
        A new ``RemoteConfig`` with overrides applied and ``base_url``
        validated (when set).

    Raises:
        ConfigurationError: If the URL or timeout is invalid.
    """
    updates: dict = {}

    # --- String fields: CLI > env > YAML ---

    final_url = url or os.getenv("MDPUBLISH_URL") or remote.base_url
    if final_url:
        updates["base_url"] = validate_base_url(final_url)

    final_username = (
        username or os.getenv("MDPUBLISH_USERNAME") or remote.username
    )
    if final_username:
        updates["username"] = final_username.strip()

    final_password = (
        password or os.getenv("MDPUBLISH_PASSWORD") or remote.password
    )
    if final_password:
        updates["password"] = final_password

    final_token = token or os.getenv("MDPUBLISH_TOKEN") or remote.token
    if final_token:
        updates["token"] = final_token.strip()

    # --- Numeric fields: env > YAML > default ---

    timeout_raw = os.getenv("MDPUBLISH_TIMEOUT")
    if timeout_raw is not None:
        try:
            timeout = int(timeout_raw)
        except ValueError:
            raise ConfigurationError(
                f"Invalid MDPUBLISH_TIMEOUT '{timeout_raw}': must be a number between 1 and 600"
            ) from None
        if not (1 <= timeout <= 600):
            raise ConfigurationError(
                f"Invalid MDPUBLISH_TIMEOUT '{timeout_raw}': must be a number between 1 and 600"
            )
        updates["request_timeout"] = timeout

    if final_url and final_url.startswith("http://"):
        logger.warning(
            "Remote URL %s is not using TLS; credentials are sent in clear text.",
            final_url,
        )

    return remote.model_copy(update=updates)
