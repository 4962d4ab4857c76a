"""
Configuration loading for vc_smart_commit.

Provides the layered resolver for repository and global settings. See
:mod:`vc_smart_commit.config.loader` for implementation details.
"""

from .loader import (  # noqa: F401
    COMMIT_STYLES,
    DEFAULT_GIT_CONFIG,
    ConfigError,
    ConfigResolver,
    GitConfig,
    validate_config,
)
