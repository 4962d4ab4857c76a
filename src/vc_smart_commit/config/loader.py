"""
Configuration loader for vc_smart_commit.

Operation parameters are resolved per repository from three layers:
hard-coded defaults, an optional global JSON file named
``.mcp-git-config.json`` in the user's home directory, and an optional
repository JSON file named ``mcp-git-config.json`` inside the ``.git``
directory. A repository value wins over a global value, and defaults
only fill fields that neither file sets.

Missing files are not an error. Unreadable or malformed files are
logged and skipped, and each field is validated on its own so that one
bad value falls back to its default without discarding the rest.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings when the root
# logger is not configured. The CLI configures logging explicitly.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


REPO_CONFIG_NAME = "mcp-git-config.json"
GLOBAL_CONFIG_NAME = ".mcp-git-config.json"
COMMIT_STYLES = ("conventional", "simple")


class ConfigError(Exception):
    """Raised when configuration cannot be saved or a value is invalid."""

    pass


@dataclass(frozen=True)
class GitConfig:
    """Resolved operation parameters.

    Every field always carries a value; see :data:`DEFAULT_GIT_CONFIG`.
    """

    main_branch: str = "main"
    commit_style: str = "conventional"
    remote_name: str = "origin"
    auto_push: bool = False
    ai_model: str = "claude-3-5-sonnet-latest"
    max_file_size: int = 10 * 1024 * 1024

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase mapping used in the JSON files."""
        return {
            "mainBranch": self.main_branch,
            "commitStyle": self.commit_style,
            "remoteName": self.remote_name,
            "autoPush": self.auto_push,
            "aiModel": self.ai_model,
            "maxFileSize": self.max_file_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GitConfig":
        """Build a config from a camelCase mapping, validating each field."""
        return validate_config(data)


DEFAULT_GIT_CONFIG = GitConfig()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_name(value: Any) -> bool:
    return isinstance(value, str)


# camelCase key -> (dataclass field, validity check)
FIELDS = {
    "mainBranch": ("main_branch", _is_name),
    "commitStyle": ("commit_style", lambda value: isinstance(value, str) and value in COMMIT_STYLES),
    "remoteName": ("remote_name", _is_name),
    "autoPush": ("auto_push", lambda value: isinstance(value, bool)),
    "aiModel": ("ai_model", _is_name),
    "maxFileSize": ("max_file_size", lambda value: _is_number(value) and value > 0),
}


def is_valid_value(key: str, value: Any) -> bool:
    """Return True if ``value`` is acceptable for the camelCase ``key``."""
    return key in FIELDS and FIELDS[key][1](value)


def validate_config(data: Dict[str, Any]) -> GitConfig:
    """Validate a raw mapping field by field.

    Invalid or missing fields take the corresponding default value.
    Unknown keys are ignored.
    """
    values = {}
    for key, (name, _) in FIELDS.items():
        if is_valid_value(key, data.get(key)):
            values[name] = data[key]
    return GitConfig(**values)


def _get_global_config_path() -> Path:
    """Return the location of the global configuration file."""
    return Path.home() / GLOBAL_CONFIG_NAME


def repo_config_path(repo_path: Union[str, Path]) -> Path:
    """Return the location of the repository configuration file."""
    return Path(repo_path) / ".git" / REPO_CONFIG_NAME


def _read_layer(path: Path) -> Dict[str, Any]:
    """Read one JSON layer, returning an empty mapping when unusable."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable configuration file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring configuration file %s: expected a JSON object", path)
        return {}
    logger.debug("Loaded configuration layer from: %s", path)
    return data


def _valid_fields(layer: Dict[str, Any], path: Path) -> Dict[str, Any]:
    """Keep the known keys of one layer whose values pass validation."""
    kept = {}
    for key, value in layer.items():
        if key not in FIELDS:
            continue
        if is_valid_value(key, value):
            kept[key] = value
        else:
            logger.warning("Ignoring invalid value for %s in %s: %r", key, path, value)
    return kept


class ConfigResolver:
    """Resolve, cache, and persist :class:`GitConfig` per repository path.

    One resolver is meant to be owned by one server or session; the
    cache lives on the instance.

    Parameters
    ----------
    global_path : Path, optional
        Location of the global configuration file. Defaults to
        ``~/.mcp-git-config.json``.
    """

    def __init__(self, global_path: Optional[Path] = None) -> None:
        self.global_path = global_path
        self._cache: Dict[str, GitConfig] = {}

    def _global_path(self) -> Path:
        return self.global_path if self.global_path is not None else _get_global_config_path()

    @staticmethod
    def _key(repo_path: Union[str, Path]) -> str:
        return str(Path(repo_path).resolve())

    def resolve(self, repo_path: Union[str, Path]) -> GitConfig:
        """Return the effective configuration for ``repo_path``.

        The result is memoized; resolving the same path again returns
        the same object until :meth:`save` or :meth:`clear_cache`.
        """
        key = self._key(repo_path)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        global_file = self._global_path()
        repo_file = repo_config_path(key)
        merged: Dict[str, Any] = dict(DEFAULT_GIT_CONFIG.to_dict())
        merged.update(_valid_fields(_read_layer(global_file), global_file))
        merged.update(_valid_fields(_read_layer(repo_file), repo_file))

        config = validate_config(merged)
        self._cache[key] = config
        return config

    def save(self, config: GitConfig, repo_path: Union[str, Path]) -> GitConfig:
        """Write ``config`` to the repository file and refresh the cache.

        Every field is written, so the repository file then shadows the
        global file completely. Use :meth:`save_partial` to set single
        fields.

        Raises
        ------
        ConfigError
            If the file cannot be written.
        """
        key = self._key(repo_path)
        validated = validate_config(config.to_dict())
        self._write(repo_config_path(key), validated.to_dict())
        self._cache[key] = validated
        return validated

    def save_partial(self, values: Dict[str, Any], repo_path: Union[str, Path]) -> Dict[str, Any]:
        """Merge ``values`` (camelCase keys) into the repository file.

        Fields the repository file does not set keep coming from the
        global file or the defaults.

        Raises
        ------
        ConfigError
            If a key is unknown, a value is invalid or the file cannot be
            written.
        """
        key = self._key(repo_path)
        merged = self._merge_into(repo_config_path(key), values)
        self._cache.pop(key, None)
        return merged

    def save_global(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``values`` (camelCase keys) into the global file.

        The whole cache is cleared so every repository picks up the
        change on its next resolution.

        Raises
        ------
        ConfigError
            If a key is unknown, a value is invalid or the file cannot be
            written.
        """
        merged = self._merge_into(self._global_path(), values)
        self.clear_cache()
        return merged

    def clear_cache(self) -> None:
        """Forget every resolved configuration."""
        self._cache.clear()

    def _merge_into(self, path: Path, values: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(values) - set(FIELDS)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        rejected = [key for key, value in values.items() if not is_valid_value(key, value)]
        if rejected:
            raise ConfigError(f"Invalid configuration values for: {', '.join(sorted(rejected))}")
        merged = {**_read_layer(path), **values}
        self._write(path, merged)
        return merged

    @staticmethod
    def _write(path: Path, data: Dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save configuration to %s: %s", path, exc)
            raise ConfigError(f"Failed to save git config: {exc}") from exc
