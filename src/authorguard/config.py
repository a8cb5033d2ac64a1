"""
Configuration for authorguard.

The engine needs no options to run; every field has a default matching
the reference behavior. Hosts may pass a flat mapping of option names,
which is merged over these defaults. Options the engine does not know
are accepted and ignored so a host can share one configuration block
between several plugins.
"""

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from authorguard.errors import ConfigError


class GuardConfig(BaseModel):
    """
    Engine options.

    Attributes:
        admin_profile: Profile that exempts an actor from ownership checks
        anonymous_id: Actor id the host uses for unauthenticated requests
        author_field: Dotted path of the author attribute in stored documents
        filter_subscriptions: Whether realtime subscriptions are narrowed too
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    admin_profile: str = Field(default="admin", min_length=1)
    anonymous_id: str = Field(default="-1", min_length=1)
    author_field: str = Field(default="_meta.author", min_length=1)
    filter_subscriptions: bool = Field(default=False)


DEFAULT_CONFIG = GuardConfig()


def load_config_from_mapping(options: Mapping[str, Any] | None) -> GuardConfig:
    """
    Merge host-supplied options over the defaults.

    Raises:
        ConfigError: If a known option has an invalid value
    """
    if not options:
        return DEFAULT_CONFIG
    merged = {**DEFAULT_CONFIG.model_dump(), **options}
    try:
        return GuardConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(message=f"Invalid configuration: {e}") from e


def load_config(path: Path | str) -> GuardConfig:
    """
    Load configuration from a YAML file.

    An empty file yields the defaults.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            message=f"Cannot read configuration file: {path}",
            path=str(path),
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            message=f"Malformed YAML in {path}: {e}",
            path=str(path),
        ) from e

    if data is None:
        return DEFAULT_CONFIG
    if not isinstance(data, dict):
        raise ConfigError(
            message=f"Configuration must be a mapping, got {type(data).__name__}",
            path=str(path),
        )

    try:
        return load_config_from_mapping(data)
    except ConfigError as e:
        e.path = str(path)
        e.context["path"] = e.path
        raise
