#!/usr/bin/env python3
"""
bkf-mysql - Loads database configuration from the provisioning project
and spawns mysql (or any compatible client) connected to it.
"""

import argparse
import logging
import sys

from bkf_mysql import __version__
from bkf_mysql.database_config import ConfigError
from bkf_mysql.launcher import (
    DEFAULT_PROVISIONING_PATH, MYSQL_EXECUTABLE_VAR, PROVISIONING_PATH_VAR,
    SpawnError, build_command, config_file_path, connection_url,
    masked_command, mysql_executable, provisioning_root,
    read_config_from_file, spawn_mysql,
)

logger = logging.getLogger(__name__)

EPILOG = (
    f"The path to the provisioning project is expected to be {DEFAULT_PROVISIONING_PATH}.\n"
    f"Set the {PROVISIONING_PATH_VAR} environment variable to override it.\n\n"
    f"To use an alternative mysql executable (e.g. mycli), set the "
    f"{MYSQL_EXECUTABLE_VAR} environment variable"
)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(
        prog="bkf-mysql",
        description="Loads database configuration from the provisioning project and spawns mysql",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("project", help="The name of the project to connect")
    ap.add_argument("-p", "--prod", action="store_true", help="Connects to the production environment (default)")
    ap.add_argument("-s", "--staging", action="store_true", help="Connects to the staging environment")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    ap.add_argument("--dry-run", action="store_true", help="Show the mysql command without running it")
    ap.add_argument("--url", action="store_true", help="Print the connection URL instead of running mysql")
    ap.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    environment = "staging" if args.staging else "production"
    path = config_file_path(args.project, environment, provisioning_root())

    try:
        cfg = read_config_from_file(path, environment)
    except (OSError, UnicodeDecodeError, ConfigError) as e:
        print(f"Error reading config file {path}:\n\t{e}")
        return 1

    url = connection_url(cfg)
    logger.info(f"Resolved {args.project}/{environment} to {url.render_as_string(hide_password=True)}")

    if args.url:
        print(url.render_as_string(hide_password=False))
        return 0

    if args.dry_run:
        cmd = build_command(mysql_executable(), cfg)
        print(masked_command(cmd))
        return 0

    try:
        spawn_mysql(cfg)
    except SpawnError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 2

    # the client exit code is not propagated
    return 0


if __name__ == "__main__":
    sys.exit(main())
