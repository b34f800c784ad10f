"""The conductor configuration, read from the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping, Optional

DEFAULT_PREFIX = "ASTRIA_CONDUCTOR_"
_LOG_PREFIX = "RUST_"
_MAX_U32 = (1 << 32) - 1


class ConfigError(ValueError):
    """Raised when the configuration cannot be read."""


class CommitLevel(Enum):
    """Which sequencer commitments are sent to the execution layer."""

    SOFT_ONLY = "SoftOnly"
    FIRM_ONLY = "FirmOnly"
    SOFT_AND_FIRM = "SoftAndFirm"

    def is_soft_only(self) -> bool:
        return self is CommitLevel.SOFT_ONLY

    def is_firm_only(self) -> bool:
        return self is CommitLevel.FIRM_ONLY


@dataclass(frozen=True)
class Config:
    """Settings of the conductor."""

    celestia_node_url: str
    celestia_bearer_token: str
    sequencer_url: str
    chain_id: str
    execution_rpc_url: str
    log: str
    disable_empty_block_execution: bool
    initial_sequencer_block_height: int
    execution_commit_level: CommitLevel

    @classmethod
    def from_environment(
        cls, prefix: str, environ: Optional[Mapping[str, str]] = None
    ) -> Config:
        """Read the configuration from variables starting with ``prefix``.

        ``RUST_LOG`` supplies ``log`` unless the prefixed variable overrides it.
        Unknown prefixed variables are rejected.
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for key, value in env.items():
            if key.upper() == _LOG_PREFIX + "LOG":
                values["log"] = value
        upper_prefix = prefix.upper()
        known = {f.name for f in fields(cls)}
        for key, value in env.items():
            if not key.upper().startswith(upper_prefix):
                continue
            name = key[len(prefix):].lower()
            if not name:
                continue
            if name not in known:
                raise ConfigError(f"unknown field `{name}` (from `{key}`)")
            values[name] = value

        missing = [name for name in (f.name for f in fields(cls)) if name not in values]
        if missing:
            raise ConfigError(f"missing field `{missing[0]}`")

        return cls(
            celestia_node_url=values["celestia_node_url"],
            celestia_bearer_token=values["celestia_bearer_token"],
            sequencer_url=values["sequencer_url"],
            chain_id=values["chain_id"],
            execution_rpc_url=values["execution_rpc_url"],
            log=values["log"],
            disable_empty_block_execution=_parse_bool(
                "disable_empty_block_execution", values["disable_empty_block_execution"]
            ),
            initial_sequencer_block_height=_parse_u32(
                "initial_sequencer_block_height", values["initial_sequencer_block_height"]
            ),
            execution_commit_level=_parse_commit_level(values["execution_commit_level"]),
        )

    def to_json(self) -> str:
        """Serialise the configuration as compact JSON."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.value if isinstance(value, CommitLevel) else value
        return json.dumps(data, separators=(",", ":"))


def _parse_bool(name: str, raw: str) -> bool:
    text = raw.strip()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ConfigError(f"invalid value for `{name}`: expected a boolean, got `{raw}`")


def _parse_u32(name: str, raw: str) -> int:
    try:
        value = int(raw.strip(), 10)
    except ValueError:
        raise ConfigError(f"invalid value for `{name}`: expected an integer, got `{raw}`") from None
    if not 0 <= value <= _MAX_U32:
        raise ConfigError(f"invalid value for `{name}`: {value} does not fit into u32")
    return value


def _parse_commit_level(raw: str) -> CommitLevel:
    try:
        return CommitLevel(raw.strip())
    except ValueError:
        variants = ", ".join(f"`{level.value}`" for level in CommitLevel)
        raise ConfigError(
            f"unknown variant `{raw}` for `execution_commit_level`, expected one of {variants}"
        ) from None


def get(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Read the configuration using the standard variable prefix."""
    return Config.from_environment(DEFAULT_PREFIX, environ)