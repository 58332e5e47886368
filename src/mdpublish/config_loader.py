"""
Project config file loading and saving for mdpublish.

Provides env var interpolation, YAML loading into a ``Context``, and
atomic saves that only rewrite the tracked ``metadata`` section.

Usage:
    from mdpublish.config_loader import load_context, save_context

    context = load_context(".mdpublish.yml")
    ...
    save_context(context)
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml

from .config_schema import build_config
from .context import Context
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".mdpublish.yml"

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    * ``${VAR}`` is replaced with ``os.environ.get(VAR, "")``.
    * ``${VAR:-default}`` uses *default* when VAR is unset or empty.
    * Literal ``${`` with no closing ``}`` is left untouched.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)  # None when no :- clause
        env_val = os.environ.get(var_name)
        if env_val is not None and env_val != "":
            return env_val
        if default is not None:
            return default
        return ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Walk a nested dict/list and interpolate env vars in all strings."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. Raw YAML access
# ---------------------------------------------------------------------------


def _read_raw(path: Path) -> dict[str, Any]:
    """Load the YAML document at *path* without interpolation.

    Returns an empty dict when the file is missing or empty.
    """
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Config file {path} is not valid YAML: {exc}"
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} has non-mapping root ({type(data).__name__})"
        )
    return data


# ---------------------------------------------------------------------------
# 3. Load / save
# ---------------------------------------------------------------------------


def load_context(path: str | Path = DEFAULT_CONFIG_FILE) -> Context:
    """Load the project config at *path* into a new ``Context``.

    A missing file yields a zero-config context whose ``save_context()``
    will create the file.

    Raises:
        ConfigurationError: If the file is not valid YAML or does not match
            the schema.
    """
    config_path = Path(path).expanduser().absolute()
    raw = _read_raw(config_path)
    if raw:
        logger.debug("Loaded configuration from %s", config_path)
    else:
        logger.debug(
            "No configuration at %s, using defaults", config_path
        )

    config = build_config(_interpolate_recursive(raw))
    return Context(config_path=config_path, config=config)


def save_context(context: Context) -> None:
    """Persist the tracked document metadata back to the config file.

    Only the ``metadata`` key is replaced; every other section is written
    back exactly as it was read (un-interpolated), so ``${VAR}``
    placeholders never get expanded into the file.

    The write is atomic: a temp file in the same directory is written then
    moved over the target with ``os.replace()``.
    """
    target = context.config_path
    raw = _read_raw(target)
    raw["metadata"] = [m.to_dict() for m in context.config.metadata]

    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(target.parent), suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            yaml.safe_dump(
                raw,
                fh,
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
        os.replace(tmp_path, target)
    except BaseException:
        # Clean up temp file on any failure.
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    logger.debug("Saved configuration to %s", target)
