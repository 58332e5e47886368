"""Remote adapters and the registry used to select one by label.

``remote.adapter`` in the config file names the adapter; the label is
validated against ``REMOTE_REGISTRY`` when the config is loaded.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError
from .base import Remote
from .jive import JiveRemote
from .noop import NoopRemote

if TYPE_CHECKING:
    import requests

    from ..context import Context

logger = logging.getLogger(__name__)

REMOTE_REGISTRY: dict[str, type] = {
    NoopRemote.name: NoopRemote,
    JiveRemote.name: JiveRemote,
}


def create_remote(
    context: Context, session: requests.Session | None = None
) -> Remote:
    """Build and validate the adapter configured for *context*.

    Raises:
        ConfigurationError: Unknown adapter label or incomplete settings.
    """
    label = context.config.remote.adapter
    try:
        factory = REMOTE_REGISTRY[label]
    except KeyError:
        raise ConfigurationError(
            f"Unknown remote adapter '{label}'. "
            f"Expected one of: {', '.join(sorted(REMOTE_REGISTRY))}"
        ) from None

    remote = factory(context, session)
    remote.validate_config()
    logger.debug("Using %s remote", label)
    return remote


__all__ = [
    "REMOTE_REGISTRY",
    "JiveRemote",
    "NoopRemote",
    "Remote",
    "create_remote",
]
