"""Configuration data model for bundling runs.

``BundleConfig`` gathers every knob the pipeline exposes: define
substitutions, the mangling mode and naming policy, module table naming,
resolver extensions, output minification and the random seed. It validates itself and round-trips
through JSON so a configuration can be kept next to a project.

Example:
    >>> config = BundleConfig(mangle_mode=MangleMode.MANUAL, defines={"DEBUG": "false"})
    >>> config.validate()
    >>> config.save(Path("bundle.json"))
    >>> BundleConfig.load(Path("bundle.json")).mangle_mode
    <MangleMode.MANUAL: 'manual'>
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from luabundle.core.identifiers import (
    DEFAULT_TABLE_NAME_LENGTH,
    DEFAULT_TABLE_PREFIX,
    NAMING_SCHEMES,
)
from luabundle.core.path_resolver import DEFAULT_EXTENSIONS
from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import ensure_directory

logger = get_logger("luabundle.core.config")

CONFIG_VERSION = "1.0"


def parse_define(text: str) -> Tuple[str, str]:
    """Split ``PATTERN=REPLACEMENT`` at the first ``=``.

    Raises:
        ValueError: If there is no ``=`` or the pattern is empty.
    """
    pattern, sep, replacement = text.partition("=")
    if not sep or not pattern:
        raise ValueError(f"Invalid define '{text}', expected PATTERN=REPLACEMENT")
    return pattern, replacement


class MangleMode(Enum):
    """Property mangling mode.

    Modes:
        DISABLED: No mangling; the bundle is still parsed and regenerated.
        MANUAL: Only marker-prefixed property names are mangled.
        AUTO: All property names are mangled; marker-prefixed ones are
            kept with the marker removed.
    """
    DISABLED = "off"
    MANUAL = "manual"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: str | MangleMode) -> MangleMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Invalid mangle mode: {value}. Expected one of: {valid}") from None


@dataclass
class BundleConfig:
    """Settings for one bundling run.

    Attributes:
        version: Configuration format version (currently "1.0").
        mangle_mode: Whether and how property names are mangled.
        defines: Literal pattern -> replacement pairs for the entry text.
        naming_scheme: Alphabet for mangled names ("compact" or "lowercase").
        protect_sentinel: Keep sentinel-prefixed names such as ``__index``.
        marker: Prefix that selects names in manual mode.
        sentinel: Prefix of protected names.
        table_name_prefix: Literal start of the module table name.
        table_name_length: Random characters in the module table name.
        extensions: Extensions tried when resolving references.
        random_seed: Seed for the table name; None gives a random name.
        validate_modules: Syntax-check each inlined module and empty the
            ones that fail.
        minify: Strip comments and collapse whitespace in the generated
            bundle.
    """

    version: str = CONFIG_VERSION
    mangle_mode: MangleMode = MangleMode.DISABLED
    defines: Dict[str, str] = field(default_factory=dict)
    naming_scheme: str = "compact"
    protect_sentinel: bool = True
    marker: str = "_"
    sentinel: str = "__"
    table_name_prefix: str = DEFAULT_TABLE_PREFIX
    table_name_length: int = DEFAULT_TABLE_NAME_LENGTH
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    random_seed: Optional[int] = None
    validate_modules: bool = False
    minify: bool = True

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ValueError: If any field has an invalid value.
        """
        if self.version != CONFIG_VERSION:
            raise ValueError(f"Invalid version: {self.version}. Expected '{CONFIG_VERSION}'")

        if not isinstance(self.mangle_mode, MangleMode):
            raise ValueError(f"mangle_mode must be a MangleMode, got {self.mangle_mode!r}")

        if not isinstance(self.defines, dict):
            raise ValueError("defines must be a mapping of pattern to replacement")
        for pattern, replacement in self.defines.items():
            if not isinstance(pattern, str) or not isinstance(replacement, str):
                raise ValueError(f"Define entries must be strings: {pattern!r}={replacement!r}")
            if not pattern:
                raise ValueError("Define patterns must not be empty")

        if self.naming_scheme not in NAMING_SCHEMES:
            raise ValueError(
                f"Invalid naming scheme: {self.naming_scheme}. "
                f"Expected one of: {', '.join(sorted(NAMING_SCHEMES))}"
            )

        if not isinstance(self.marker, str) or not self.marker:
            raise ValueError("marker must be a non-empty string")
        if not isinstance(self.sentinel, str):
            raise ValueError("sentinel must be a string")

        if not isinstance(self.table_name_prefix, str) or not (
            self.table_name_prefix == "" or self.table_name_prefix.isidentifier()
        ):
            raise ValueError(
                f"table_name_prefix must be a valid identifier prefix, got {self.table_name_prefix!r}"
            )
        if not isinstance(self.table_name_length, int) or isinstance(self.table_name_length, bool):
            raise ValueError("table_name_length must be an integer")
        if self.table_name_length < 1:
            raise ValueError(
                f"table_name_length must be at least 1, got {self.table_name_length}"
            )

        if not self.extensions:
            raise ValueError("At least one module extension is required")
        for ext in self.extensions:
            if not isinstance(ext, str) or ext in ("", "."):
                raise ValueError(f"Invalid module extension: {ext!r}")

        if self.random_seed is not None and (
            not isinstance(self.random_seed, int) or isinstance(self.random_seed, bool)
        ):
            raise ValueError("random_seed must be an integer or null")

        if not isinstance(self.minify, bool):
            raise ValueError(f"minify must be a boolean, got {self.minify!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a JSON-serializable dictionary."""
        return {
            "version": self.version,
            "mangle_mode": self.mangle_mode.value,
            "defines": dict(self.defines),
            "naming_scheme": self.naming_scheme,
            "protect_sentinel": self.protect_sentinel,
            "marker": self.marker,
            "sentinel": self.sentinel,
            "table_name_prefix": self.table_name_prefix,
            "table_name_length": self.table_name_length,
            "extensions": list(self.extensions),
            "random_seed": self.random_seed,
            "validate_modules": self.validate_modules,
            "minify": self.minify,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BundleConfig:
        """Create a configuration from a dictionary; missing keys take defaults.

        Raises:
            ValueError: If the mangle mode is unknown or unknown keys are present.
        """
        defaults = cls()
        unknown = set(data) - set(defaults.to_dict())
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        config = cls(
            version=data.get("version", CONFIG_VERSION),
            mangle_mode=MangleMode.parse(data.get("mangle_mode", defaults.mangle_mode)),
            defines=dict(data.get("defines") or {}),
            naming_scheme=data.get("naming_scheme", defaults.naming_scheme),
            protect_sentinel=bool(data.get("protect_sentinel", defaults.protect_sentinel)),
            marker=data.get("marker", defaults.marker),
            sentinel=data.get("sentinel", defaults.sentinel),
            table_name_prefix=data.get("table_name_prefix", defaults.table_name_prefix),
            table_name_length=data.get("table_name_length", defaults.table_name_length),
            extensions=tuple(data.get("extensions") or defaults.extensions),
            random_seed=data.get("random_seed", defaults.random_seed),
            validate_modules=bool(data.get("validate_modules", defaults.validate_modules)),
            minify=bool(data.get("minify", defaults.minify)),
        )
        logger.debug(f"Created configuration from dictionary (mangle_mode={config.mangle_mode.value})")
        return config

    def save(self, file_path: Path) -> None:
        """Validate and write the configuration as JSON.

        Raises:
            ValueError: If validation fails.
            OSError: If the file cannot be written.
        """
        self.validate()
        file_path = Path(file_path)
        ensure_directory(file_path.parent)
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug(f"Configuration saved to {file_path}")

    @classmethod
    def load(cls, file_path: Path) -> BundleConfig:
        """Read, parse and validate a JSON configuration file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the JSON is invalid or validation fails.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            logger.error(f"Configuration file not found: {file_path}")
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in configuration file {file_path}: {e}")
            raise ValueError(f"Invalid JSON format in configuration file: {e}")

        if not isinstance(data, dict):
            raise ValueError("Configuration file must contain a JSON object")

        try:
            config = cls.from_dict(data)
            config.validate()
        except ValueError as e:
            logger.error(f"Validation failed for configuration {file_path}: {e}")
            raise ValueError(f"Configuration validation failed: {e}")

        logger.debug(f"Configuration loaded from {file_path}")
        return config
