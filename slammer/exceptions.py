"""Error types raised before the worker pool starts."""


class SlammerError(Exception):
    """Base class for fatal slammer errors."""


class ConfigError(SlammerError):
    """Invalid run configuration; the run never starts."""


class DriverError(SlammerError):
    """Unsupported driver or a connection string the driver cannot use."""
