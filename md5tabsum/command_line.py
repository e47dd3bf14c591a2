import argparse
from typing import List

from . import __version__

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
PASSWORDSTORE_ACTIONS = ["create", "add", "update", "delete", "show"]
INSTANCE_ACTIONS = ("add", "update", "delete")


def parse_command_line(command_line: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="md5tabsum",
        description="Compute order independent MD5 checksums of database tables.",
        add_help=False,
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        type=str,
        required=False,
        help="config file to use",
    )
    parser.add_argument(
        "-l",
        "--loglevel",
        dest="loglevel",
        type=str.upper,
        required=False,
        choices=LOG_LEVELS,
        help="log level of md5tabsum itself, instance log levels are set in the config file",
    )
    parser.add_argument(
        "-p",
        "--passwordstore",
        dest="action",
        type=str,
        required=False,
        choices=PASSWORDSTORE_ACTIONS,
        help="manage the password store instead of computing checksums",
    )
    parser.add_argument(
        "-i",
        "--instance",
        dest="instance",
        type=str,
        required=False,
        help="instance id (<dbms>.<name>) for the password store actions add, update and delete",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"md5tabsum {__version__}",
    )
    parser.add_argument(
        "--help",
        action="help",
        help="show this help message and exit",
    )
    parser.set_defaults(
        config="md5tabsum.yaml",
        loglevel="INFO",
        action=None,
        instance=None,
    )
    args = parser.parse_args(command_line)
    if args.action in INSTANCE_ACTIONS and not args.instance:
        parser.error(f"-p {args.action} requires -i INSTANCE")
    return args
