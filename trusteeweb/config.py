"""
trusteeweb Configuration Module
===============================

Centralized configuration management for the trusteeweb framework.
Supports environment variables for deployment-specific values (SQL database
location, output directory).

Design Decision:
- Configuration is a dataclass tree that can be passed through the pipeline
- Values are validated once, before any data is loaded or traversed
- Option names mirror the permission-report parameters administrators know
  (MaximumDepth, PermissiveMailboxThreshold, PowerTrusteeThreshold)
"""

import os
import json
from dataclasses import dataclass, field, asdict
from typing import Optional
from pathlib import Path

from .errors import ConfigError


@dataclass
class TraversalConfig:
    """Configuration for web traversal.

    Attributes:
        maximum_depth: Deepest level (in hops from a seed) to discover
        deadline_seconds: Abort the build after this many seconds (None = no limit)
    """
    maximum_depth: int = 100
    deadline_seconds: Optional[float] = None


@dataclass
class ThresholdConfig:
    """Fan-out thresholds applied before traversal.

    Attributes:
        permissive_mailbox_threshold: Mailboxes with more trustees than this are dropped
        power_trustee_threshold: Trustees with access to more mailboxes than this are dropped
    """
    permissive_mailbox_threshold: int = 500
    power_trustee_threshold: int = 500


@dataclass
class IgnoreConfig:
    """Ignore-lists applied while loading relationship rows.

    Attributes:
        mailbox_identities: Mailbox identities whose rows are discarded
        trustee_identities: Trustee identities whose rows are discarded
        permission_types: Permission type names whose rows are discarded
    """
    mailbox_identities: list = field(default_factory=list)
    trustee_identities: list = field(default_factory=list)
    permission_types: list = field(default_factory=list)


@dataclass
class SqlConfig:
    """Configuration for the SQLite-backed relationship table.

    Attributes:
        database: Path to the SQLite database (None = use CSV input)
        table_name: Name of the relationship table inside the database
    """
    database: Optional[str] = None
    table_name: str = "MailboxTrustee"

    def __post_init__(self):
        if self.database is None:
            self.database = os.environ.get("TRUSTEEWEB_SQL_DATABASE")


@dataclass
class OutputConfig:
    """Configuration for output and reporting.

    Attributes:
        output_dir: Directory for output files
        generate_csv: Whether to write node/edge CSV files
        generate_json: Whether to write the JSON run summary
        generate_html: Whether to render the interactive web (pyvis)
        generate_png: Whether to render a static image (matplotlib)
    """
    output_dir: Optional[str] = None
    generate_csv: bool = True
    generate_json: bool = True
    generate_html: bool = True
    generate_png: bool = False

    def __post_init__(self):
        if self.output_dir is None:
            self.output_dir = os.environ.get("TRUSTEEWEB_OUTPUT_DIR", "output")


@dataclass
class WebConfig:
    """Main configuration container for trusteeweb.

    Usage:
        config = WebConfig()  # Uses all defaults
        config = WebConfig(traversal=TraversalConfig(maximum_depth=3))
        config.validate()
    """
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    sql: SqlConfig = field(default_factory=SqlConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    verbose: bool = True

    def validate(self) -> "WebConfig":
        """Check numeric options, raising ConfigError on the first bad value."""
        require_positive_int("maximum_depth", self.traversal.maximum_depth)
        require_positive_int(
            "permissive_mailbox_threshold", self.thresholds.permissive_mailbox_threshold
        )
        require_positive_int(
            "power_trustee_threshold", self.thresholds.power_trustee_threshold
        )
        deadline = self.traversal.deadline_seconds
        if deadline is not None and (isinstance(deadline, bool) or
                                     not isinstance(deadline, (int, float)) or
                                     deadline <= 0):
            raise ConfigError(f"deadline_seconds must be a positive number, got {deadline!r}")
        return self

    @classmethod
    def from_dict(cls, config_dict: dict) -> "WebConfig":
        """Create configuration from a dictionary.

        Useful for loading from JSON files or GUI inputs. Unknown keys in a
        section raise ConfigError.
        """
        try:
            return cls(
                traversal=TraversalConfig(**config_dict.get("traversal", {})),
                thresholds=ThresholdConfig(**config_dict.get("thresholds", {})),
                ignore=IgnoreConfig(**config_dict.get("ignore", {})),
                sql=SqlConfig(**config_dict.get("sql", {})),
                output=OutputConfig(**config_dict.get("output", {})),
                verbose=config_dict.get("verbose", True),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_json_file(cls, path: str) -> "WebConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        return asdict(self)


def require_positive_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{name} must be an integer >= 1, got {value!r}")


# Default global configuration instance
_default_config: Optional[WebConfig] = None


def get_config() -> WebConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = WebConfig()
    return _default_config


def set_config(config: WebConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
