from __future__ import annotations


class BuildError(Exception):
    """Base class for errors raised by the build pipeline."""


class ConfigurationError(BuildError):
    """The build cannot start; nothing in the deploy tree has been touched."""


class EmptyIndexError(ConfigurationError):
    pass
