"""
Per-device launcher.

Started by the accelerator@.service template with the instance name as the
device identifier. Reads <config_dir>/<device> and execs the accelerator with
those arguments, unchanged.
"""

import argparse
import logging
import os
import shlex
import sys
from pathlib import Path
from typing import List, Optional

from .config import read_device_args
from .errors import AcceleratorError, ConfigError
from .main import EXIT_ERROR, setup_logging

log = logging.getLogger(__name__)

DEFAULT_PROGRAM = 'accelerator'
EXIT_EXEC_FAILED = 127


def build_command(device: str, extra: Optional[List[str]] = None,
                  config_dir: Optional[Path] = None,
                  program: str = DEFAULT_PROGRAM) -> List[str]:
    """
    argv for the target program: the device's stored arguments, then `extra`.

    `program` may hold several words, e.g. "/usr/bin/python3 -m accelerator".
    """
    args = read_device_args(device, config_dir)
    log.debug(f"Arguments for '{device}': {args}")
    command = shlex.split(program)
    if not command:
        raise ConfigError("No program to run")
    return command + args + list(extra or [])


def launch(argv: List[str]):
    """Replace this process with `argv`. Only returns by raising OSError."""
    log.info(f"Executing: {shlex.join(argv)}")
    sys.stdout.flush()
    sys.stderr.flush()
    os.execvp(argv[0], argv)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog='accelerator-launch',
        description='Start the accelerator with the arguments stored for a device.'
    )
    parser.add_argument('--config-dir', type=Path,
                        help='Directory holding per-device argument files')
    parser.add_argument('--program',
                        default=os.environ.get('ACCELERATOR_PROGRAM', DEFAULT_PROGRAM),
                        help='Program to run, may include arguments (default: %(default)s)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Print the command instead of running it')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('device', help='Device identifier, e.g. logitechrecv')
    parser.add_argument('extra', nargs=argparse.REMAINDER,
                        help='Arguments appended after the stored ones')
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        command = build_command(args.device, args.extra, args.config_dir, args.program)
    except AcceleratorError as e:
        log.error(str(e))
        sys.exit(EXIT_ERROR)

    if args.dry_run:
        print(shlex.join(command))
        return

    try:
        launch(command)
    except OSError as e:
        log.error(f"Cannot execute {command[0]}: {e.strerror or e}")
        sys.exit(EXIT_EXEC_FAILED)


if __name__ == '__main__':
    main()
