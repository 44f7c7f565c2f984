"""Environment-driven configuration.

Centralizes every tunable value so that components receive plain
settings objects instead of reading the environment themselves.
"""

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "https://ai-gateway.vercel.sh/v1"
DEFAULT_MODEL = "anthropic/claude-sonnet-4"


class QuotaPolicy(str, Enum):
    """When the quota counter is decremented relative to the work it pays for."""

    CHARGE_AFTER = "charge_after"  # check, work, then conditional decrement
    RESERVE = "reserve"            # decrement first, refund if the turn fails


class GatewaySettings(BaseModel):
    """Connection and sampling parameters for the upstream gateway."""

    model_config = ConfigDict(frozen=True)

    provider: str = Field(default="gateway", description="'gateway' or 'openai'")
    api_key: str = Field(default="", repr=False)
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    temperature: float = 0.7
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    stop: list[str] = Field(default_factory=list)
    timeout: float = Field(default=60.0, gt=0, description="Seconds")
    system_prompt: str | None = None


class LimitSettings(BaseModel):
    """Quota, rate and replay-window limits."""

    model_config = ConfigDict(frozen=True)

    chat_tokens_per_user: int = Field(default=10, ge=0)
    search_tokens_per_user: int = Field(default=100, ge=0)
    requests_per_minute: int = Field(default=60, ge=1)
    history_window: int = Field(default=10, ge=0)
    tool_timeout: float = Field(default=30.0, gt=0)
    quota_policy: QuotaPolicy = QuotaPolicy.CHARGE_AFTER


class StorageSettings(BaseModel):
    """Where conversation history and quota counters live."""

    model_config = ConfigDict(frozen=True)

    backend: str = "sqlite"
    path: Path = Path("./chatrelay.db")


class Settings(BaseModel):
    """Top-level settings bundle."""

    model_config = ConfigDict(frozen=True)

    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    limits: LimitSettings = Field(default_factory=LimitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance

        Raises:
            ValueError: If a numeric or enum variable has an invalid value
        """
        env = os.environ if environ is None else environ

        stop_raw = env.get("AI_STOP_SEQUENCES", "")
        stop = [s for s in stop_raw.split(",") if s]

        gateway = GatewaySettings(
            provider=env.get("LLM_PROVIDER", "gateway").lower(),
            api_key=env.get("AI_API_KEY", ""),
            base_url=env.get("AI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            model=env.get("AI_MODEL", DEFAULT_MODEL),
            max_tokens=_int(env, "AI_MAX_TOKENS", 4096),
            temperature=_float(env, "AI_TEMPERATURE", 0.7),
            top_p=_float(env, "AI_TOP_P", 1.0),
            frequency_penalty=_float(env, "AI_FREQUENCY_PENALTY", 0.0),
            presence_penalty=_float(env, "AI_PRESENCE_PENALTY", 0.0),
            stop=stop,
            timeout=_float(env, "AI_TIMEOUT", 60.0),
            system_prompt=env.get("AI_SYSTEM_PROMPT") or None,
        )

        policy_raw = env.get("QUOTA_POLICY", QuotaPolicy.CHARGE_AFTER.value)
        try:
            policy = QuotaPolicy(policy_raw.lower())
        except ValueError as e:
            raise ValueError(f"Invalid QUOTA_POLICY: {policy_raw!r}") from e

        limits = LimitSettings(
            chat_tokens_per_user=_int(env, "CHAT_TOKENS_PER_USER", 10),
            search_tokens_per_user=_int(env, "SEARCH_TOKENS_PER_USER", 100),
            requests_per_minute=_int(env, "AI_RATE_LIMIT_RPM", 60),
            history_window=_int(env, "HISTORY_WINDOW", 10),
            tool_timeout=_float(env, "TOOL_TIMEOUT", 30.0),
            quota_policy=policy,
        )

        storage = StorageSettings(
            backend=env.get("HISTORY_BACKEND", "sqlite").lower(),
            path=Path(env.get("HISTORY_DB_PATH", "./chatrelay.db")),
        )

        return cls(gateway=gateway, limits=limits, storage=storage)


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"Invalid {name}: {raw!r} is not an integer") from e


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    # Accept Go-style durations such as "30s" for timeouts
    if name.endswith("TIMEOUT") and raw.endswith("s"):
        raw = raw[:-1]
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Invalid {name}: {raw!r} is not a number") from e
