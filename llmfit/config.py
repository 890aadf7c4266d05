"""Configuration management for llmfit."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from llmfit.fit import MAX_UTILIZATION_PCT, FitPolicy
from llmfit.system.probes import DEFAULT_TIMEOUT_S

logger = logging.getLogger(__name__)

# Default config locations
CONFIG_PATHS = [
    Path.home() / ".config" / "llmfit" / "config.json",
    Path.home() / ".llmfit.json",
]


@dataclass
class Config:
    """Main configuration for llmfit."""

    policy: FitPolicy = field(default_factory=FitPolicy)
    probe_timeout: float = DEFAULT_TIMEOUT_S
    catalog_path: Path | None = None  # None means the built-in catalog

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create config from a dictionary.

        Raises:
            ValueError: If the data is not an object or a value has the wrong type
            TypeError: If a numeric value is not a number
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        policy_data = data.get("policy") or {}
        if not isinstance(policy_data, dict):
            raise ValueError("'policy' must be a JSON object")

        catalog = data.get("catalog_path")
        if catalog is not None and not isinstance(catalog, str):
            raise ValueError("'catalog_path' must be a string")

        return cls(
            policy=FitPolicy.from_dict(policy_data),
            probe_timeout=float(data.get("probe_timeout", DEFAULT_TIMEOUT_S)),
            catalog_path=Path(catalog).expanduser() if catalog else None,
        )

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from the first readable config file.

        Unreadable or malformed files are logged and skipped; if none can
        be used the defaults are returned.
        """
        paths_to_try = [path] if path else CONFIG_PATHS

        for config_path in paths_to_try:
            if not config_path.exists():
                continue
            try:
                with open(config_path, encoding="utf-8") as f:
                    config = cls.from_dict(json.load(f))
            except OSError as e:
                logger.warning(f"Cannot read config {config_path}: {e}")
                continue
            except (TypeError, ValueError) as e:
                # Includes invalid JSON and non-UTF-8 content
                logger.warning(f"Ignoring malformed config {config_path}: {e}")
                continue

            for issue in config.validate():
                logger.warning(f"{config_path}: {issue}")
            logger.info(f"Loaded config from {config_path}")
            return config

        logger.info("Using default configuration")
        return cls()

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "policy": self.policy.to_dict(),
            "probe_timeout": self.probe_timeout,
            "catalog_path": str(self.catalog_path) if self.catalog_path else None,
        }

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        save_path = path or CONFIG_PATHS[0]
        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved config to {save_path}")

    def validate(self) -> list[str]:
        """Validate the configuration and return any issues."""
        issues: list[str] = []
        policy = self.policy

        bounds = [
            ("perfect_max_pct", policy.perfect_max_pct),
            ("good_max_pct", policy.good_max_pct),
            ("marginal_max_pct", policy.marginal_max_pct),
            ("high_usage_note_pct", policy.high_usage_note_pct),
        ]
        for name, value in bounds:
            if not 0 < value <= MAX_UTILIZATION_PCT:
                issues.append(f"Threshold {name}={value} should be between 0 and {MAX_UTILIZATION_PCT:.0f}")

        if not policy.perfect_max_pct < policy.good_max_pct < policy.marginal_max_pct:
            issues.append("Fit thresholds must increase: perfect < good < marginal")

        if self.probe_timeout <= 0:
            issues.append(f"Probe timeout {self.probe_timeout} should be positive")

        if self.catalog_path and not self.catalog_path.exists():
            issues.append(f"Catalog file not found: {self.catalog_path}")

        return issues
