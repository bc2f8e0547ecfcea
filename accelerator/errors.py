"""Error types raised by the accelerator and its helpers."""


class AcceleratorError(Exception):
    """Base class for all accelerator errors."""


class ConfigError(AcceleratorError):
    """Raised when configuration cannot be located or parsed."""


class DeviceConfigError(ConfigError):
    """Raised when a per-device argument file is missing or unusable."""


class ProfileError(ConfigError, ValueError):
    """Raised when a YAML profile has the wrong shape or values."""


class DeviceError(AcceleratorError):
    """Raised when an input device cannot be opened, cloned or grabbed."""


class DeviceGoneError(DeviceError):
    """Raised when reading from the source device fails (usually unplugged)."""


class InstallError(AcceleratorError):
    """Raised when the udev/systemd artifacts cannot be installed."""
