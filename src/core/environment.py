"""Environment variable helpers (core domain)."""

from __future__ import annotations

import logging
from string import Template
from typing import Mapping, Optional

from core.ports import EnvironmentProvider

LOGGER = logging.getLogger(__name__)


def expand(text: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    """Replace ``$VAR`` and ``${VAR}`` references found in ``env``.

    Unknown references are left untouched.
    """

    if text is None:
        return None
    return Template(text).safe_substitute(env)


def read_environment(provider: Optional[EnvironmentProvider]) -> Mapping[str, str]:
    """Call the provider, degrading to an empty environment on failure."""

    if provider is None:
        return {}
    try:
        return provider() or {}
    except Exception as exc:
        LOGGER.error("Error retrieving environment vars: %s", exc, exc_info=True)
        return {}
