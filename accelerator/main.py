"""
Accelerator - Main entry point.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from . import __version__
from .config import Profile, parse_float, read_profile_values
from .errors import AcceleratorError, ConfigError, DeviceGoneError

log = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s'

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DEVICE_GONE = 2


def setup_logging(verbose: bool = False):
    """Configure logging for a command line entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt='%H:%M:%S'
    )


def _number(value: str) -> float:
    try:
        return parse_float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with 1, the same as configuration errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog='accelerator',
        description='Apply a speed-dependent sensitivity curve to an evdev pointing device.'
    )
    parser.add_argument('-m', dest='sens_mult', metavar='SENS_MULTIPLIER', type=_number,
                        help='The amount the sensitivity graph is scaled by')
    parser.add_argument('-a', dest='accel', metavar='ACCELERATION', type=_number,
                        help='Slope of the sensitivity graph')
    parser.add_argument('-c', dest='cap', metavar='SENS_CAP', type=_number,
                        help='Maximum sensitivity (default: infinity)')
    parser.add_argument('-o', dest='offset', metavar='INPUT_OFFSET', type=_number,
                        help='Cursor speed before sensitivity begins increasing (default: 0)')
    parser.add_argument('--profile', metavar='FILE',
                        help='YAML file with sens_mult/accel/cap/offset; flags override it')
    parser.add_argument('--list-devices', action='store_true',
                        help='List pointing devices and exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('device_file', nargs='?', metavar='DEVICE_FILE',
                        help='evdev node of the source device, e.g. /dev/input/event5')
    return parser


def resolve_profile(args: argparse.Namespace) -> Profile:
    """Merge profile file values with command line flags."""
    values = {}
    if args.profile:
        values.update(read_profile_values(args.profile))

    for key in ('sens_mult', 'accel', 'cap', 'offset'):
        flag = getattr(args, key)
        if flag is not None:
            values[key] = flag

    missing = [flag for key, flag in (('sens_mult', '-m'), ('accel', '-a')) if key not in values]
    if missing:
        raise ConfigError(f"Missing required option(s): {' '.join(missing)}")

    return Profile(**values)


def list_devices():
    """Print pointing devices, one per line."""
    from .device import enumerate_pointing_devices

    devices = enumerate_pointing_devices()
    if not devices:
        print("No readable pointing devices found (try running as root)")
        return
    for dev in devices:
        print(f"{dev.path}\t{dev.vidpid}\t{dev.name}")


def run(device_file: str, profile: Profile) -> int:
    """Accelerate `device_file` until interrupted. Returns an exit code."""
    from .device import Accelerator

    with Accelerator.open(device_file, profile) as accelerator:
        try:
            accelerator.run()
        except DeviceGoneError as e:
            log.error(str(e))
            return EXIT_DEVICE_GONE
    return EXIT_OK


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.list_devices:
        list_devices()
        sys.exit(EXIT_OK)

    if not args.device_file:
        parser.error("the following arguments are required: DEVICE_FILE")

    try:
        profile = resolve_profile(args)
    except ConfigError as e:
        parser.error(str(e))

    def signal_handler(signum, frame):
        log.info(f"Received signal {signum}, shutting down...")
        raise SystemExit(EXIT_OK)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        code = run(args.device_file, profile)
    except SystemExit as e:
        # Raised by signal_handler once the device has been released
        code = e.code
    except AcceleratorError as e:
        log.error(str(e))
        sys.exit(EXIT_ERROR)
    except Exception as e:
        log.exception(f"Fatal error: {e}")
        sys.exit(EXIT_ERROR)

    log.info("Accelerator stopped")
    sys.exit(code)


if __name__ == '__main__':
    main()
