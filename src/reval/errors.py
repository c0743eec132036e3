# Copyright (c) Syntropy Systems
"""Exceptions raised by reval."""


class RevalError(Exception):
    """Base class for reval errors."""


class ConfigError(RevalError, ValueError):
    """Invalid configuration detected before any invocation is scheduled."""


class DataError(ConfigError):
    """The dataset could not be loaded or does not match the configuration."""


class ArgsBuilderError(ConfigError):
    """The argument builder raised or returned something other than a list."""
