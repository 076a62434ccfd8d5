"""Configuration classes for message dump extraction.

Configuration objects are frozen dataclasses validated on construction, so a
configuration can be shared between parser instances without copying.
"""

import codecs
import json
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

DEFAULT_ROOT_TAG = "FileDump"
DEFAULT_RECORD_TAG = "Message"
DEFAULT_FIELD_TAGS = ("From", "Message")
DEFAULT_CHUNK_SIZE = 64 * 1024

ENV_PREFIX = "MESSAGE_DUMP_"
_TRUTHY = {"1", "true", "yes", "on"}


class TokenSourceBackend(Enum):
    """Available token sources."""

    BUILTIN = "builtin"   # Incremental hand-rolled tokenizer
    LXML = "lxml"         # lxml parser-target events, strict well-formedness


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class TokenSourceConfig:
    """Configuration for reading input and producing token events."""

    backend: TokenSourceBackend = TokenSourceBackend.BUILTIN
    encoding: str = "utf-8"
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        """Validate token source configuration."""
        if not isinstance(self.backend, TokenSourceBackend):
            raise ValueError(f"backend must be a TokenSourceBackend, got {self.backend!r}")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {self.encoding}") from e


@dataclass(frozen=True)
class ExtractorConfig:
    """Configuration for the message state machine and the parser API.

    Attributes:
        root_tag: Name of the document wrapper element
        record_tag: Name of the element that delimits one record
        field_tags: Tag names accepted as record fields
        diagnostics: Report every transition to the diagnostic sink
        correlation_id: Optional correlation ID attached to logs and diagnostics
        source: Token source configuration
    """

    root_tag: str = DEFAULT_ROOT_TAG
    record_tag: str = DEFAULT_RECORD_TAG
    field_tags: Tuple[str, ...] = DEFAULT_FIELD_TAGS
    diagnostics: bool = False
    correlation_id: Optional[str] = None
    source: TokenSourceConfig = field(default_factory=TokenSourceConfig)

    def __post_init__(self) -> None:
        """Validate the extractor configuration."""
        if not self.root_tag:
            raise ConfigValidationError("root_tag cannot be empty", "root_tag")
        if not self.record_tag:
            raise ConfigValidationError("record_tag cannot be empty", "record_tag")
        if self.root_tag == self.record_tag:
            raise ConfigValidationError(
                "root_tag and record_tag must differ",
                "root_tag",
                suggestions=[f"Use the default root tag {DEFAULT_ROOT_TAG!r}"],
            )
        if isinstance(self.field_tags, str) or not self.field_tags:
            raise ConfigValidationError(
                "field_tags must be a non-empty sequence of tag names", "field_tags"
            )
        if not all(self.field_tags):
            raise ConfigValidationError("field_tags cannot contain empty names", "field_tags")
        # Lists passed by callers or loaded from JSON are normalized to a tuple
        object.__setattr__(self, "field_tags", tuple(self.field_tags))

    @classmethod
    def strict(cls) -> "ExtractorConfig":
        """Create a configuration that rejects any non well-formed input up front."""
        return cls(source=TokenSourceConfig(backend=TokenSourceBackend.LXML))

    def override(self, **kwargs: Any) -> "ExtractorConfig":
        """Create a new configuration with specific overrides.

        Nested token source fields use double-underscore notation.

        Example:
            >>> config = ExtractorConfig()
            >>> config.override(diagnostics=True, source__chunk_size=1024).source.chunk_size
            1024
        """
        source_overrides: Dict[str, Any] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if key.startswith("source__"):
                source_overrides[key.split("__", 1)[1]] = value
            else:
                top_level[key] = value

        try:
            if source_overrides:
                top_level["source"] = replace(self.source, **source_overrides)
            return replace(self, **top_level)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return {
            "root_tag": self.root_tag,
            "record_tag": self.record_tag,
            "field_tags": list(self.field_tags),
            "diagnostics": self.diagnostics,
            "correlation_id": self.correlation_id,
            "source": {
                "backend": self.source.backend.value,
                "encoding": self.source.encoding,
                "chunk_size": self.source.chunk_size,
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExtractorConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected so that typos in configuration files surface
        immediately instead of silently falling back to defaults.
        """
        known = {"root_tag", "record_tag", "field_tags", "diagnostics",
                 "correlation_id", "source"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigValidationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                unknown[0],
                suggestions=sorted(known),
            )

        values = {key: value for key, value in data.items() if key != "source"}
        source_data = dict(data.get("source") or {})
        try:
            if "backend" in source_data:
                source_data["backend"] = TokenSourceBackend(source_data["backend"])
            values["source"] = TokenSourceConfig(**source_data)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"Invalid source configuration: {e}", "source") from e
        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> "ExtractorConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Configuration is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ExtractorConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not read configuration file {config_path}: {e}") from e
        return cls.from_json(content)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["ExtractorConfig"] = None
    ) -> "ExtractorConfig":
        """Apply ``MESSAGE_DUMP_*`` environment variables on top of ``base``.

        Recognized variables: ``MESSAGE_DUMP_DIAGNOSTICS``,
        ``MESSAGE_DUMP_BACKEND``, ``MESSAGE_DUMP_ENCODING`` and
        ``MESSAGE_DUMP_CHUNK_SIZE``.
        """
        env = os.environ if environ is None else environ
        config = base or cls()
        overrides: Dict[str, Any] = {}

        diagnostics = env.get(f"{ENV_PREFIX}DIAGNOSTICS")
        if diagnostics is not None:
            overrides["diagnostics"] = diagnostics.strip().lower() in _TRUTHY
        backend = env.get(f"{ENV_PREFIX}BACKEND")
        if backend:
            try:
                overrides["source__backend"] = TokenSourceBackend(backend.strip().lower())
            except ValueError as e:
                raise ConfigValidationError(
                    f"Unknown backend {backend!r}",
                    "source.backend",
                    suggestions=[b.value for b in TokenSourceBackend],
                ) from e
        encoding = env.get(f"{ENV_PREFIX}ENCODING")
        if encoding:
            overrides["source__encoding"] = encoding.strip()
        chunk_size = env.get(f"{ENV_PREFIX}CHUNK_SIZE")
        if chunk_size:
            try:
                overrides["source__chunk_size"] = int(chunk_size)
            except ValueError as e:
                raise ConfigValidationError(
                    f"{ENV_PREFIX}CHUNK_SIZE must be an integer", "source.chunk_size"
                ) from e

        return config.override(**overrides) if overrides else config
