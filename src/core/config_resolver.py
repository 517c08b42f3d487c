"""Layered configuration resolution (core domain).

Each field is resolved from an ordered list of optional-value providers and
the first present value wins:

1. the per-job value, with environment references expanded
2. the global default
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Mapping, Optional

from core import environment
from core.config import EffectiveConfig, GlobalConfig, JobConfig, parse_direct_message_mode
from core.models import DirectMessageMode
from core.ports import EnvironmentProvider

LOGGER = logging.getLogger(__name__)

ValueProvider = Callable[[], Optional[str]]


def _fix_empty(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value


def first_present(providers: Iterable[ValueProvider]) -> Optional[str]:
    """Return the first non-empty value produced by ``providers``."""

    for provider in providers:
        value = _fix_empty(provider())
        if value is not None:
            return value
    return None


def split_rooms(room: Optional[str]) -> List[str]:
    """Split a comma separated room list, keeping order and duplicates."""

    if not room:
        return []
    return [part.strip() for part in room.split(",") if part.strip()]


def _layers(job_value: Optional[str], global_value: Optional[str], env: Mapping[str, str]) -> List[ValueProvider]:
    return [
        lambda: environment.expand(_fix_empty(job_value), env),
        lambda: global_value,
    ]


def resolve(
    job_config: JobConfig,
    global_config: GlobalConfig,
    env_provider: Optional[EnvironmentProvider] = None,
) -> EffectiveConfig:
    """Merge job, environment, and global layers into an ``EffectiveConfig``."""

    env = environment.read_environment(env_provider)

    team_domain = first_present(_layers(job_config.team_domain, global_config.team_domain, env))
    auth_token = first_present(_layers(job_config.auth_token, global_config.auth_token, env))
    room = first_present(_layers(job_config.room, global_config.room, env))

    raw_mode = first_present(
        _layers(job_config.direct_message, global_config.direct_message_mode.value, env)
    )
    mode = parse_direct_message_mode(raw_mode) or DirectMessageMode.NONE

    LOGGER.debug("Resolved team=%s rooms=%s direct_message=%s", team_domain, room, mode.value)

    return EffectiveConfig(
        team_domain=team_domain,
        auth_token=auth_token,
        rooms=tuple(split_rooms(room)),
        direct_message_mode=mode,
    )
