"""
Configuration loading and management.

Two kinds of files live in the config directory:
- per-device argument files (named after the device, one command line each)
- optional YAML profiles holding the curve parameters
"""

import math
import os
import shlex
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .errors import DeviceConfigError, ProfileError

SYSTEM_CONFIG_DIR = Path('/etc/accelerator')


@dataclass
class Profile:
    """Parameters of the sensitivity curve."""
    sens_mult: float
    accel: float
    cap: float = math.inf  # Maximum sensitivity
    offset: float = 0.0  # Speed below which sensitivity stays flat


def get_config_dir() -> Path:
    """Get the configuration directory."""
    override = os.environ.get('ACCELERATOR_CONFIG_DIR')
    if override:
        return Path(override)

    if os.geteuid() == 0:  # Running from systemd
        return SYSTEM_CONFIG_DIR

    base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    return base / 'accelerator'


def device_config_path(device: str, config_dir: Optional[Path] = None) -> Path:
    """Path of the argument file for a device identifier."""
    if not device or device in ('.', '..') or '/' in device or '\0' in device:
        raise DeviceConfigError(f"Invalid device name: {device!r}")

    if config_dir is None:
        config_dir = get_config_dir()

    return Path(config_dir) / device


def read_device_args(device: str, config_dir: Optional[Path] = None) -> List[str]:
    """
    Read the arguments stored for a device.

    The file is split with shell word rules, so quoting works and '#' starts
    a comment. Tokens are returned unchanged and in order.
    """
    path = device_config_path(device, config_dir)

    try:
        with open(path, 'r') as f:
            text = f.read()
    except FileNotFoundError:
        raise DeviceConfigError(f"No config for device '{device}': {path} does not exist")
    except OSError as e:
        raise DeviceConfigError(f"Cannot read {path}: {e.strerror or e}")

    try:
        return shlex.split(text, comments=True)
    except ValueError as e:
        raise DeviceConfigError(f"Cannot parse {path}: {e}")


def parse_float(value: Union[int, float, str]) -> float:
    """Parse an int, float or numeric string (including 'inf') to float."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse {value} as a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise ValueError(f"Cannot parse {value!r} as a number")


def read_profile_values(path: Path) -> Dict[str, float]:
    """
    Read whichever curve parameters a YAML profile sets.

    Keys that are absent or null are left out so command line flags can fill
    them in.
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ProfileError(f"Cannot read profile {path}: {e.strerror or e}")
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in profile {path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProfileError(f"Profile {path} must be a mapping")

    values = {}
    for key in ('sens_mult', 'accel', 'cap', 'offset'):
        if data.get(key) is None:
            continue
        try:
            values[key] = parse_float(data[key])
        except ValueError:
            raise ProfileError(f"Profile {path}: '{key}' must be a number, got {data[key]!r}")

    return values


def load_profile(path: Path) -> Profile:
    """Load a complete profile from a YAML file."""
    values = read_profile_values(path)

    missing = [key for key in ('sens_mult', 'accel') if key not in values]
    if missing:
        raise ProfileError(f"Profile {path} is missing {', '.join(missing)}")

    return Profile(**values)


def save_profile(profile: Profile, path: Path):
    """Save curve parameters to a YAML file."""
    data = {
        'sens_mult': profile.sens_mult,
        'accel': profile.accel,
        'cap': profile.cap,
        'offset': profile.offset
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(data, f, default_flow_style=False)
