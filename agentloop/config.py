"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI flags < per-session overrides
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "~/.agentloop/config.yaml"


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMProviderConfig:
    name: str = "openai"
    model: str = "gpt-4o"
    api_base: str = ""
    api_key_env: str = "OPENAI_API_KEY"
    max_output_tokens: int = 4_096
    temperature: float | None = None
    timeout_seconds: int = 120
    max_retries: int = 2
    thinking_budget: int | None = None


@dataclass
class LoopConfig:
    system_prompt: str = ""
    max_turns: int = 25
    tools_enabled: bool = True


@dataclass
class ToolsConfig:
    disabled: list[str] = field(default_factory=list)
    timeout_seconds: float | None = None
    workspace: str = "."


@dataclass
class LoggingConfig:
    level: str = "WARNING"


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class AgentLoopConfig:
    llm: LLMProviderConfig = field(default_factory=LLMProviderConfig)
    session: LoopConfig = field(default_factory=LoopConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    # ----- per-session overrides (applied last) ----
    _overrides: dict[str, Any] = field(default_factory=dict, repr=False)

    def set_override(self, dotpath: str, value: Any) -> None:
        """Set a per-session override using dot notation (e.g. 'llm.model')."""
        self._overrides[dotpath] = value
        _apply_dotpath(self, dotpath, value)

    def get_override(self, dotpath: str) -> Any | None:
        return self._overrides.get(dotpath)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("_overrides", None)
        return d

    def validate(self) -> list[str]:
        """Return a list of human-readable problems (empty when valid)."""
        problems: list[str] = []
        if self.session.max_turns < 1:
            problems.append(f"session.max_turns must be >= 1 (got {self.session.max_turns})")
        if self.llm.max_output_tokens < 1:
            problems.append(
                f"llm.max_output_tokens must be >= 1 (got {self.llm.max_output_tokens})"
            )
        if self.llm.timeout_seconds <= 0:
            problems.append(f"llm.timeout_seconds must be > 0 (got {self.llm.timeout_seconds})")
        if self.llm.max_retries < 0:
            problems.append(f"llm.max_retries must be >= 0 (got {self.llm.max_retries})")
        if self.tools.timeout_seconds is not None and self.tools.timeout_seconds <= 0:
            problems.append(
                f"tools.timeout_seconds must be > 0 (got {self.tools.timeout_seconds})"
            )
        if self.llm.thinking_budget is not None and self.llm.thinking_budget < 1024:
            problems.append(
                f"llm.thinking_budget must be >= 1024 (got {self.llm.thinking_budget})"
            )
        if self.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            problems.append(f"logging.level is not a valid level: {self.logging.level}")
        return problems


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    if not hasattr(obj, parts[-1]):
        raise KeyError(f"Unknown config key: {dotpath}")
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "AGENTLOOP_LLM_NAME":            ("llm.name", str),
    "AGENTLOOP_LLM_MODEL":           ("llm.model", str),
    "AGENTLOOP_LLM_API_BASE":        ("llm.api_base", str),
    "AGENTLOOP_LLM_API_KEY_ENV":     ("llm.api_key_env", str),
    "AGENTLOOP_LLM_MAX_OUTPUT":      ("llm.max_output_tokens", int),
    "AGENTLOOP_LLM_TEMPERATURE":     ("llm.temperature", float),
    "AGENTLOOP_LLM_TIMEOUT":         ("llm.timeout_seconds", int),
    "AGENTLOOP_LLM_MAX_RETRIES":     ("llm.max_retries", int),
    "AGENTLOOP_LLM_THINKING_BUDGET": ("llm.thinking_budget", int),
    "AGENTLOOP_SESSION_MAX_TURNS":   ("session.max_turns", int),
    "AGENTLOOP_SESSION_TOOLS":       ("session.tools_enabled", bool),
    "AGENTLOOP_TOOLS_DISABLED":      ("tools.disabled", list),
    "AGENTLOOP_TOOLS_TIMEOUT":       ("tools.timeout_seconds", float),
    "AGENTLOOP_TOOLS_WORKSPACE":     ("tools.workspace", str),
    "AGENTLOOP_LOG_LEVEL":           ("logging.level", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AgentLoopConfig:
    """
    Build an AgentLoopConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional; missing files are ignored)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile:
        profile_data = raw.get("profiles", {}).get(profile)
        if profile_data is None:
            raise KeyError(f"Unknown profile: {profile}")
        raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = AgentLoopConfig(
        llm=_build_section(LLMProviderConfig, raw.get("llm", {})),
        session=_build_section(LoopConfig, raw.get("session", {})),
        tools=_build_section(ToolsConfig, raw.get("tools", {})),
        logging=_build_section(LoggingConfig, raw.get("logging", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
