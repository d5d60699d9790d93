"""Environment-driven settings for the API and MCP entry points."""
from __future__ import annotations

import os
import random
from dataclasses import dataclass

from startsmart.store import Store, initial_state


@dataclass(frozen=True)
class Settings:
    user_id: str = "user-1"
    user_name: str = "John Doe"
    initial_tokens: int = 100
    chat_delay_min: float = 1.0
    chat_delay_max: float = 2.0
    seed: int | None = None
    host: str = "127.0.0.1"
    port: int = 8002
    log_level: str = "INFO"

    @property
    def chat_delay(self) -> tuple[float, float]:
        return self.chat_delay_min, self.chat_delay_max


def _env_int(env: dict[str, str], name: str, default: int | None) -> int | None:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(env: dict[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """Read ``STARTSMART_*`` variables. Raises ValueError on invalid values."""
    env = dict(os.environ) if env is None else env
    defaults = Settings()

    tokens = _env_int(env, "STARTSMART_INITIAL_TOKENS", defaults.initial_tokens)
    if tokens < 0:
        raise ValueError("STARTSMART_INITIAL_TOKENS must not be negative")

    delay_min = _env_float(env, "STARTSMART_CHAT_DELAY_MIN", defaults.chat_delay_min)
    delay_max = _env_float(env, "STARTSMART_CHAT_DELAY_MAX", defaults.chat_delay_max)
    if delay_min < 0 or delay_min > delay_max:
        raise ValueError("STARTSMART_CHAT_DELAY_MIN must be between 0 and STARTSMART_CHAT_DELAY_MAX")

    return Settings(
        user_id=env.get("STARTSMART_USER_ID", defaults.user_id),
        user_name=env.get("STARTSMART_USER_NAME", defaults.user_name),
        initial_tokens=tokens,
        chat_delay_min=delay_min,
        chat_delay_max=delay_max,
        seed=_env_int(env, "STARTSMART_SEED", None),
        host=env.get("STARTSMART_HOST", defaults.host),
        port=_env_int(env, "STARTSMART_PORT", defaults.port),
        log_level=env.get("STARTSMART_LOG_LEVEL", defaults.log_level).upper(),
    )


def build_store(settings: Settings) -> Store:
    """Create a fresh ``Store`` seeded from *settings*."""
    state = initial_state(
        user_id=settings.user_id, user_name=settings.user_name, tokens=settings.initial_tokens,
    )
    return Store(state, rng=random.Random(settings.seed))
