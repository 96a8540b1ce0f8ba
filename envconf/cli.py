# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""envconf CLI.

Subcommands:

* ``check``: load configuration from the environment (and ``.env``
  files), resolve secrets, validate, and report the result
"""

import argparse
import logging
import sys

from envconf.config import load
from envconf.decoder import decode
from envconf.durations import format_duration
from envconf.errors import ConfigError
from envconf.logging import SecretFilter, configure_logging
from envconf.lookuper import default_lookuper, get_dotenv_path
from envconf.secrets.manager import SecretsConfig


def cmd_check(argv: list[str]) -> int:
    """Load the configuration and print a short summary.

    Returns:
        0 if the configuration loads and validates, 1 otherwise.
    """
    parser = argparse.ArgumentParser(prog="envconf check")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    args = parser.parse_args(argv)
    configure_logging(level=logging.DEBUG if args.debug else logging.WARNING)

    print(f"Env file: {get_dotenv_path()}")
    lookuper = default_lookuper()
    try:
        config = load(lookuper)
    except ConfigError as e:
        print(f"Status:   error: {SecretFilter.redact(str(e))}")
        for note in getattr(e, "__notes__", []):
            print(f"          {note}")
        return 1

    print("Status:   ok")
    print(f"Server:   {config.server_name} (port {config.port})")
    secrets_config = decode(SecretsConfig, lookuper)
    print(f"Secrets:  {secrets_config.secret_manager_type}")
    print(
        f"Codes:    {config.code_digits} digits, valid for "
        f"{format_duration(config.code_duration)}"
    )
    if config.dev_mode:
        print("Warning:  DEV_MODE is enabled")
    return 0


_DISPATCH = {
    "check": cmd_check,
}

_USAGE = """\
usage: envconf <command> [options]

commands:
  check    load and validate configuration from the environment
"""


def cli() -> None:
    """Entry point for the ``envconf`` console script."""
    argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        print(_USAGE)
        sys.exit(0)

    handler = _DISPATCH.get(argv[0])
    if handler is None:
        print(f"envconf: unknown command '{argv[0]}'", file=sys.stderr)
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    sys.exit(handler(argv[1:]))
