"""
Proof system configuration.

Limits and execution knobs for spec assembly, proving and verification:
- workers:              threads for the respond/verify phases (1 = inline)
- max_statements:       statements allowed in one ProofSpec
- max_context_bytes:    size limit of the spec context
- max_nonce_bytes:      size limit of the prover/verifier nonce
- collect_all_failures: report every failing check, not only the first
- metrics_enabled:      record prometheus metrics for prove/verify calls

Loading:
- ProofSystemConfig.from_env(prefix="COMPOSITE_PROOFS_")
- ProofSystemConfig.from_file(path)   JSON, or YAML via PyYAML
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

import yaml

from .errors import ConfigError


@dataclass
class ProofSystemConfig:
    workers: int = 1
    max_statements: int = 256
    max_context_bytes: int = 64 * 1024
    max_nonce_bytes: int = 4096
    collect_all_failures: bool = True
    metrics_enabled: bool = True

    def validate(self) -> None:
        if self.workers < 1:
            raise ConfigError("workers must be >= 1", key="workers")
        if self.max_statements < 1:
            raise ConfigError("max_statements must be >= 1", key="max_statements")
        for name in ("max_context_bytes", "max_nonce_bytes"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0", key=name)

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_env(prefix: str = "COMPOSITE_PROOFS_") -> "ProofSystemConfig":
        """
        Load configuration from environment variables. All variables are optional.

          - COMPOSITE_PROOFS_WORKERS=4
          - COMPOSITE_PROOFS_MAX_STATEMENTS=256
          - COMPOSITE_PROOFS_MAX_CONTEXT_BYTES=65536
          - COMPOSITE_PROOFS_MAX_NONCE_BYTES=4096
          - COMPOSITE_PROOFS_COLLECT_ALL_FAILURES=true
          - COMPOSITE_PROOFS_METRICS_ENABLED=false
        """

        def _get(name: str, cast: Any, default: Any) -> Any:
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                if cast is bool:
                    return raw.lower() in {"1", "true", "yes", "on"}
                return cast(raw)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {key}: {raw!r}", key=key) from e

        d = ProofSystemConfig()
        cfg = ProofSystemConfig(
            workers=_get("WORKERS", int, d.workers),
            max_statements=_get("MAX_STATEMENTS", int, d.max_statements),
            max_context_bytes=_get("MAX_CONTEXT_BYTES", int, d.max_context_bytes),
            max_nonce_bytes=_get("MAX_NONCE_BYTES", int, d.max_nonce_bytes),
            collect_all_failures=_get("COLLECT_ALL_FAILURES", bool, d.collect_all_failures),
            metrics_enabled=_get("METRICS_ENABLED", bool, d.metrics_enabled),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str) -> "ProofSystemConfig":
        """
        Load configuration from a JSON or YAML file with the same keys as the
        dataclass. Example (YAML):

            workers: 4
            max_statements: 64
            collect_all_failures: false
        """
        data = _parse_json_or_yaml(_read_text(path), path)
        if not isinstance(data, dict):
            raise ConfigError(f"{path!r} must contain a mapping")
        known = {f.name for f in fields(ProofSystemConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(map(str, unknown))}", key=str(unknown[0]))
        cfg = ProofSystemConfig(**data)
        cfg.validate()
        return cfg


# -------------------------
# Utilities
# -------------------------


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_json_or_yaml(text: str, path_hint: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path_hint!r} as JSON or YAML: {e}") from e


DEFAULT: ProofSystemConfig = ProofSystemConfig()

__all__ = ["ProofSystemConfig", "DEFAULT"]
