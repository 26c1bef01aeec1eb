"""CLI configuration.

Values are read from a YAML file (``$AWSCLEAN_CONFIG`` or
``~/.awsclean/config.yaml``), then overridden by ``AWSCLEAN_*`` environment
variables, then by command-line options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from src.errors import ConfigInvalid
from src.models.resource import Environment

DEFAULT_CONFIG_PATH = Path.home() / ".awsclean" / "config.yaml"

ENV_OVERRIDES = {
    "AWSCLEAN_PROFILE": "aws_profile",
    "AWSCLEAN_REGION": "region",
    "AWSCLEAN_LOG_LEVEL": "log_level",
    "AWSCLEAN_RULES": "rules_path",
    "AWSCLEAN_STORAGE_PATH": "storage_path",
}


@dataclass
class Config:
    """Application configuration.

    Attributes:
        aws_profile: AWS profile name (optional)
        region: AWS region (optional)
        log_level: Default log level
        rules_path: Retention rules YAML file (optional)
        storage_path: Base directory for audit logs (optional)
        environment_tag: Tag key holding a resource's environment
        repositories: ECR repository -> environment name
        buckets: S3 bucket -> environment name
        task_families: ECS task definition family -> environment name
        max_workers: Concurrent deletions per pair
        max_attempts: Delete attempts per resource
        max_parallel_pairs: Pairs processed concurrently
    """

    aws_profile: Optional[str] = None
    region: Optional[str] = None
    log_level: str = "INFO"
    rules_path: Optional[str] = None
    storage_path: Optional[str] = None
    environment_tag: str = "Environment"
    repositories: Dict[str, str] = field(default_factory=dict)
    buckets: Dict[str, str] = field(default_factory=dict)
    task_families: Dict[str, str] = field(default_factory=dict)
    max_workers: int = 5
    max_attempts: int = 3
    max_parallel_pairs: int = 4

    @classmethod
    def load(cls, path: Optional[str] = None) -> Config:
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: $AWSCLEAN_CONFIG or ~/.awsclean/config.yaml)

        Returns:
            Config instance; defaults when no file exists

        Raises:
            ConfigInvalid: If the file exists but is malformed
        """
        config_path = Path(path or os.environ.get("AWSCLEAN_CONFIG") or DEFAULT_CONFIG_PATH)
        data: Dict[str, Any] = {}

        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigInvalid(f"Invalid YAML in config file {config_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigInvalid(f"Config file {config_path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigInvalid(f"Unknown config keys in {config_path}: {', '.join(sorted(unknown))}")

        config = cls(**data)

        for env_var, attr in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                setattr(config, attr, value)

        config.validate()
        return config

    def validate(self) -> bool:
        """Validate configuration values.

        Raises:
            ConfigInvalid: If any value is invalid
        """
        for name in ("max_workers", "max_attempts", "max_parallel_pairs"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigInvalid(f"{name} must be a positive integer, got {value!r}")

        for name in ("repositories", "buckets", "task_families"):
            self.environment_map(name)

        return True

    def environment_map(self, name: str) -> Dict[str, Environment]:
        """Parse one of the container -> environment mappings.

        Raises:
            ConfigInvalid: If the mapping or an environment name is invalid
        """
        mapping = getattr(self, name)
        if not isinstance(mapping, dict):
            raise ConfigInvalid(f"{name} must be a mapping of name to environment")
        try:
            return {key: Environment.parse(value) for key, value in mapping.items()}
        except ValueError as e:
            raise ConfigInvalid(f"{name}: {e}")
