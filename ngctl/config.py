"""
Settings and cluster config file loading.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .models import NodeGroupSpec
from .stacks.naming import DEFAULT_STACK_PREFIX

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Process-wide settings, read from the environment."""
    stack_prefix: str = DEFAULT_STACK_PREFIX
    region: Optional[str] = None
    log_level: str = "WARNING"
    scan_timeout_s: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Settings

        Raises:
            ConfigError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        prefix = env.get("NGCTL_STACK_PREFIX", DEFAULT_STACK_PREFIX).strip()
        if not prefix:
            raise ConfigError("NGCTL_STACK_PREFIX must not be empty")

        log_level = env.get("NGCTL_LOG_LEVEL", "WARNING").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid NGCTL_LOG_LEVEL: {log_level}. Expected one of {', '.join(LOG_LEVELS)}")

        timeout = None
        raw_timeout = env.get("NGCTL_SCAN_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ConfigError(f"Invalid NGCTL_SCAN_TIMEOUT: {raw_timeout}") from None
            if timeout <= 0:
                raise ConfigError(f"NGCTL_SCAN_TIMEOUT must be positive, got {raw_timeout}")

        return cls(
            stack_prefix=prefix,
            region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION"),
            log_level=log_level,
            scan_timeout_s=timeout,
        )


class NodeGroupConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    instance_type: Optional[str] = Field(None, alias="instanceType")
    ami_family: Optional[str] = Field(None, alias="amiFamily")
    desired_capacity: Optional[int] = Field(None, alias="desiredCapacity", ge=0)
    min_size: Optional[int] = Field(None, alias="minSize", ge=0)
    max_size: Optional[int] = Field(None, alias="maxSize", ge=0)

    def to_spec(self) -> NodeGroupSpec:
        return NodeGroupSpec(
            name=self.name,
            desired_capacity=self.desired_capacity,
            min_size=self.min_size,
            max_size=self.max_size,
            instance_type=self.instance_type,
            ami_family=self.ami_family,
        )


class ClusterMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    region: Optional[str] = None


class ClusterConfig(BaseModel):
    """The subset of an eksctl ClusterConfig that describes node groups."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: Optional[str] = Field(None, alias="apiVersion")
    kind: str = "ClusterConfig"
    metadata: ClusterMetadata
    node_groups: List[NodeGroupConfig] = Field(default_factory=list, alias="nodeGroups")

    def nodegroup_spec(self, name: str) -> NodeGroupSpec:
        """
        Spec of the named node group.

        Raises:
            ConfigError: If the config has no node group with that name
        """
        for ng in self.node_groups:
            if ng.name == name:
                return ng.to_spec()
        raise ConfigError(f"nodegroup {name} not found in config for cluster {self.metadata.name}")


def load_cluster_config(path: str) -> ClusterConfig:
    """
    Load a ClusterConfig YAML file.

    Args:
        path: Path to the config file

    Returns:
        Validated cluster config

    Raises:
        ConfigError: If the file is missing, not YAML, or fails validation
    """
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigError(f"Config file {path} not found")

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {path} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    if data.get("kind", "ClusterConfig") != "ClusterConfig":
        raise ConfigError(f"Config file {path} has kind {data.get('kind')}, expected ClusterConfig")

    try:
        return ClusterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
