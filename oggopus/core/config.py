import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, ClassVar, Iterable, Mapping, get_args, get_origin

from dotenv import load_dotenv

# ----------------------------------------------------------------------------
# helpers & converters
# ----------------------------------------------------------------------------

# RFC 7845 section 5.2: the comment header should not exceed 125,829,120 bytes (120 MiB).
DEFAULT_COMMENT_HEADER_MAX_BYTES: int = 120 * 1024 * 1024

DEFAULT_LOG_CONFIG_FILE: Path = Path(__file__).parent / "logging_config.json"


def _size_converter(raw: str) -> int:
    """
    Accepts:
      • "1048576"        → 1048576
      • "512KiB", "64MiB", "1GiB" (case-insensitive)
    """
    value = raw.strip().lower()
    for suffix, factor in (("kib", 1024), ("mib", 1024 ** 2), ("gib", 1024 ** 3)):
        if value.endswith(suffix):
            return int(value[:-len(suffix)].strip()) * factor
    return int(value)


_CONVERTERS: dict[type, Callable[[str], Any]] = {
    int: _size_converter,
    float: float,
    str: str,
    Path: Path,
}


# ----------------------------------------------------------------------------
# main configuration class
# ----------------------------------------------------------------------------

@dataclass
class Config:
    """Parser configuration collected from environment variables.

    Every field may receive *metadata* keys:

    * ``env`` - name of the environment variable to read
    * ``choices`` - iterable of allowed values
    """

    # ---------------- field definitions ----------------
    COMMENT_HEADER_MAX_BYTES: int = field(
        default=DEFAULT_COMMENT_HEADER_MAX_BYTES,
        metadata={"env": "OGGOPUS_COMMENT_HEADER_MAX_BYTES"},
    )

    LOG_LEVEL: str = field(
        default="WARNING",
        metadata={
            "env": "OGGOPUS_LOG_LEVEL",
            "choices": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
    )

    LOG_CONFIG_FILE: Path = field(
        default=DEFAULT_LOG_CONFIG_FILE,
        metadata={"env": "OGGOPUS_LOG_CONFIG_FILE"},
    )

    LOG_DIRECTORY: Path = field(
        default=Path("logs"),
        metadata={"env": "OGGOPUS_LOG_DIRECTORY"},
    )

    # ---------------- singleton plumbing ----------------
    _singleton: ClassVar["Config | None"] = None

    @classmethod
    def get(cls) -> "Config":
        if cls._singleton is None:
            cls._singleton = cls()
        return cls._singleton

    @classmethod
    def reset(cls) -> None:
        """Forget the cached instance so the next ``get()`` re-reads the environment."""
        cls._singleton = None

    def __post_init__(self) -> None:
        self._load_from_env()

    # ---------------- validators ----------------

    def validate_comment_header_max_bytes(self, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number of bytes")
        return value

    def validate_log_level(self, value: str) -> str:
        return value.upper()

    # ---------------- private helpers ----------------

    def _load_from_env(self) -> None:
        """Populate dataclass fields from the environment, with validation."""
        load_dotenv(override=False)

        errors: list[str] = []

        for f in fields(self):
            meta: Mapping[str, Any] = f.metadata or {}
            env_name: str = meta.get("env", f.name)
            raw = os.getenv(env_name)

            # keep default if nothing provided
            if raw is None:
                continue

            # convert str -> annotated type
            try:
                value = self._convert_type(raw, f.type)
            except (ValueError, TypeError) as exc:
                errors.append(
                    f"{env_name}={raw!r}: {exc}. Using default {getattr(self, f.name)!r}."
                )
                continue

            # custom hook: validate_<field_name>(value) -> value
            hook_name = f"validate_{f.name.lower()}"
            if hasattr(self, hook_name):
                try:
                    value = getattr(self, hook_name)(value)
                except (ValueError, TypeError) as e:
                    errors.append(
                        f"Custom validator {hook_name} failed: {e}. Using default {getattr(self, f.name)!r}."
                    )
                    continue

            # choices validation
            if "choices" in meta and value not in meta["choices"]:
                errors.append(
                    f"{env_name}={raw!r} not in {meta['choices']}. Using default {getattr(self, f.name)!r}."
                )
                continue

            # all good - store
            object.__setattr__(self, f.name, value)

        for err in errors:
            logging.getLogger("oggopus").error(err)
        if errors:
            logging.getLogger("oggopus").warning("Config loaded with %d issues.", len(errors))

    # ---------------------------------------------------------------------
    # type conversion helpers - extendable via _CONVERTERS
    # ---------------------------------------------------------------------

    def _convert_type(self, raw: str, to_type: object) -> Any:
        """Convert *raw* string from env to ``to_type`` recursively."""
        origin = get_origin(to_type)

        if origin in {list, Iterable}:
            subtype = get_args(to_type)[0] if get_args(to_type) else str
            return [self._convert_type(part.strip(), subtype) for part in raw.split(",")]

        if isinstance(to_type, type) and to_type in _CONVERTERS:
            return _CONVERTERS[to_type](raw)

        raise TypeError(f"Don't know how to cast {raw!r} to {to_type}")
