import logging
import os
import sys

from rich import print as rprint

from md5tabsum import __version__
from md5tabsum.command_line import parse_command_line
from md5tabsum.configuration import Configuration
from md5tabsum.errors import ConfigurationError, PasswordStoreError
from md5tabsum.logger import LOGGER_NAME, ChecksumPrinter, setup_logging
from md5tabsum.models import Status
from md5tabsum.orchestrator import Orchestrator
from md5tabsum.passwordstore import PasswordStore

LOGGER = logging.getLogger(LOGGER_NAME)


def manage_passwordstore(action: str, store: PasswordStore, settings, instance_id=None) -> Status:
    if action == "create":
        store.create(settings.instances.keys())
    elif action == "add":
        store.add(instance_id)
    elif action == "update":
        store.update(instance_id)
    elif action == "delete":
        store.delete(instance_id)
    elif action == "show":
        for name in store.list():
            rprint(name)
    return Status.OK


def run(argv) -> int:
    args = parse_command_line(argv)
    try:
        settings = Configuration(args.config).settings()
    except ConfigurationError as err:
        setup_logging(level=args.loglevel)
        LOGGER.error(str(err))
        return int(Status.ERROR)

    setup_logging(settings.logfile, args.loglevel)
    LOGGER.info(
        "md5tabsum %s started, config file: %s, password store: %s",
        __version__,
        os.path.abspath(args.config),
        os.path.abspath(settings.passwordstore),
    )

    store = PasswordStore(settings.passwordstore)
    try:
        if args.action:
            rc = manage_passwordstore(args.action, store, settings, args.instance)
        else:
            rc = Orchestrator(settings.instances, store.load(), ChecksumPrinter()).run()
    except PasswordStoreError as err:
        LOGGER.error(str(err))
        rc = Status.ERROR

    LOGGER.info("[rc=%d]", rc)
    return int(rc)


def main():
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
