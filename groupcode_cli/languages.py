"""Language descriptors: comment markers and annotation patterns.

The descriptor table is read from ``languages.toml`` the first time it is
needed and cached for the life of the registry.  When the file cannot be
read or parsed, a built-in ``Default`` descriptor is used instead.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import toml

from . import config
from .models import CaptureStrategyKind, CommentMarkers, LanguageDescriptor

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = r"@group\s+([^:]+?)(?:\s*:\s*(.*?))?\s*$"
DEFAULT_FLAGS = "i"

FALLBACK_DESCRIPTOR = LanguageDescriptor(
    name="Default",
    file_types=("*",),
    comment_markers=CommentMarkers(line="//", block_start="/*", block_end="*/"),
    capture=CaptureStrategyKind.GENERIC,
)

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}

SUPPORTED_FILE_TYPES = {
    "js", "jsx", "ts", "tsx", "mjs", "cjs",
    "html", "htm", "xml", "svg", "vue",
    "css", "scss", "less",
    "py", "pyw", "pyi", "ipynb",
    "cs", "c", "cpp", "cc", "cxx", "h", "hpp", "m", "mm",
    "go", "rb", "php",
    "java", "kt", "kts", "scala", "groovy", "gvy", "gy", "gsh",
    "sh", "bash", "zsh", "ps1", "psm1", "psd1",
    "md", "markdown", "sql", "rs", "swift", "dart",
    "hs", "lhs", "lua", "r", "vbs", "vb", "fs", "fsx", "fsi",
    "pl", "pm", "t", "pod", "clj", "cljs", "cljc", "edn",
    "erl", "hrl", "jl", "d", "cr", "cob", "cbl", "cpy",
    "f", "for", "f90", "f95", "f03", "f08", "asm", "s",
    "yml", "yaml", "toml", "jsonc", "elm", "dockerfile", "makefile",
    "ex", "exs", "coffee", "litcoffee", "proto", "tcl",
}


@dataclass(frozen=True)
class LanguageConfig:
    """Parsed contents of the language configuration file."""

    languages: Tuple[LanguageDescriptor, ...]
    pattern: "re.Pattern[str]"
    flags: int
    default_language: Optional[str] = None

    def compile_extra(self, descriptor: LanguageDescriptor) -> List["re.Pattern[str]"]:
        return _compile_patterns(descriptor.extra_patterns, self.flags)


def get_file_type(file_path: Optional[str]) -> str:
    """Lower-cased extension of *file_path* without the dot, or ``""``."""
    if not file_path:
        return ""
    name = Path(str(file_path)).name
    if name.lower() in ("dockerfile", "makefile"):
        return name.lower()
    dot = name.rfind(".")
    if dot <= 0 and not name.startswith("."):
        return ""
    if dot == len(name) - 1:
        return ""
    return name[dot + 1:].lower()


def is_supported_file_type(file_type: str) -> bool:
    if not file_type:
        return False
    return file_type.lower() in SUPPORTED_FILE_TYPES


def _parse_flags(flags: str) -> int:
    value = 0
    for letter in flags or "":
        value |= _FLAG_MAP.get(letter.lower(), 0)
    return value


def _compile_patterns(patterns: Iterable[str], flags: int) -> List["re.Pattern[str]"]:
    compiled = []
    for raw in patterns:
        try:
            compiled.append(re.compile(raw, flags))
        except re.error as exc:
            logger.warning("Skipping invalid annotation pattern %r: %s", raw, exc)
    return compiled


def _descriptor_from_dict(payload: Dict[str, Any]) -> LanguageDescriptor:
    markers = payload.get("comment_markers") or {}
    capture = payload.get("capture", CaptureStrategyKind.GENERIC.value)
    try:
        capture_kind = CaptureStrategyKind(capture)
    except ValueError:
        logger.warning(
            "Unknown capture strategy '%s' for %s; using generic",
            capture, payload.get("name"),
        )
        capture_kind = CaptureStrategyKind.GENERIC

    return LanguageDescriptor(
        name=str(payload["name"]),
        file_types=tuple(str(t) for t in payload.get("file_types", [])),
        comment_markers=CommentMarkers(
            line=markers.get("line") or None,
            block_start=markers.get("block_start") or None,
            block_end=markers.get("block_end") or None,
        ),
        capture=capture_kind,
        extra_patterns=tuple(str(p) for p in payload.get("extra_patterns", [])),
    )


def fallback_config() -> LanguageConfig:
    flags = _parse_flags(DEFAULT_FLAGS)
    return LanguageConfig(
        languages=(FALLBACK_DESCRIPTOR,),
        pattern=re.compile(DEFAULT_PATTERN, flags),
        flags=flags,
        default_language=FALLBACK_DESCRIPTOR.name,
    )


def load_language_config(path: Path) -> LanguageConfig:
    """Parse *path*; any failure yields :func:`fallback_config`."""
    try:
        payload = toml.load(str(path))
        languages = tuple(_descriptor_from_dict(item) for item in payload["languages"])
        if not languages:
            raise ValueError("no languages declared")
        pattern_cfg = payload.get("comment_pattern", {})
        flags = _parse_flags(pattern_cfg.get("flags", DEFAULT_FLAGS))
        pattern = re.compile(pattern_cfg.get("pattern", DEFAULT_PATTERN), flags)
        if pattern.groups < 2:
            raise ValueError("comment pattern needs two capture groups")
    except (OSError, toml.TomlDecodeError, KeyError, TypeError, ValueError, re.error) as exc:
        logger.warning(
            "Failed to load language configuration from %s (%s); using defaults",
            path, exc,
        )
        return fallback_config()

    logger.debug("Loaded %d language descriptors from %s", len(languages), path)
    return LanguageConfig(
        languages=languages,
        pattern=pattern,
        flags=flags,
        default_language=payload.get("default_language"),
    )


class LanguageRegistry:
    """Owns the language configuration and resolves descriptors.

    The configuration is loaded at most once; concurrent first access is
    serialised by a lock so no caller ever sees a partially built table.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.config_path = config_path or config.LANGUAGE_CONFIG_FILE
        self._config: Optional[LanguageConfig] = None
        self._extra_cache: Dict[str, List["re.Pattern[str]"]] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> LanguageConfig:
        loaded = self._config
        if loaded is not None:
            return loaded
        with self._lock:
            if self._config is None:
                self._config = load_language_config(self.config_path)
            return self._config

    @property
    def languages(self) -> Tuple[LanguageDescriptor, ...]:
        return self.config.languages

    @property
    def pattern(self) -> "re.Pattern[str]":
        return self.config.pattern

    def extra_patterns(self, descriptor: LanguageDescriptor) -> List["re.Pattern[str]"]:
        cached = self._extra_cache.get(descriptor.name)
        if cached is None:
            cached = self.config.compile_extra(descriptor)
            self._extra_cache[descriptor.name] = cached
        return cached

    def find_by_file_type(self, file_type: str) -> Optional[LanguageDescriptor]:
        if not file_type:
            return None
        for descriptor in self.languages:
            if descriptor.matches(file_type):
                return descriptor
        return None

    def default_descriptor(self) -> Optional[LanguageDescriptor]:
        languages = self.languages
        if not languages:
            return None
        wanted = self.config.default_language
        for descriptor in languages:
            if wanted and descriptor.name == wanted:
                return descriptor
        for descriptor in languages:
            if "*" in descriptor.file_types:
                return descriptor
        return languages[0]

    def resolve(
        self,
        language_id: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> Optional[LanguageDescriptor]:
        """Pick a descriptor by language id, then extension, then default."""
        descriptor = self.find_by_file_type(language_id or "")
        if descriptor is None:
            descriptor = self.find_by_file_type(get_file_type(file_path))
        if descriptor is None:
            descriptor = self.default_descriptor()
        return descriptor


_default_registry: Optional[LanguageRegistry] = None
_default_registry_lock = threading.Lock()


def get_language_registry() -> LanguageRegistry:
    """Return the shared registry backed by the packaged ``languages.toml``."""
    global _default_registry
    registry = _default_registry
    if registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = LanguageRegistry()
            registry = _default_registry
    return registry


# ------------------------------------------------------------------
# Annotation comment generation
# ------------------------------------------------------------------

_HASH_TYPES = {
    "py", "gitignore", "yml", "yaml", "bash", "sh", "zsh", "dockerfile",
    "makefile", "properties", "ruby", "rb", "perl", "pl", "toml", "r",
}
_MARKUP_TYPES = {"html", "htm", "xml", "svg", "vue", "md", "markdown"}
_DASH_TYPES = {"sql", "lua", "hs", "elm"}


def comment_syntax_for(file_type: Optional[str]) -> Tuple[str, str]:
    """Return ``(prefix, suffix)`` for a new ``@group`` comment."""
    file_type = (file_type or "").lower()
    if file_type in _HASH_TYPES:
        return "# @group ", ""
    if file_type in _MARKUP_TYPES:
        return "<!-- @group ", " -->"
    if file_type in _DASH_TYPES:
        return "-- @group ", ""
    return "// @group ", ""


def format_group_comment(
    group_name: str,
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
    file_type: Optional[str] = None,
) -> str:
    """Build the annotation comment text for *group_name*."""
    prefix, suffix = comment_syntax_for(file_type)
    text = prefix + group_name
    if description:
        text += f": {description}"
    if tags:
        text += " #" + " #".join(tags)
    return text + suffix
