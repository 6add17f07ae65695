# __main__.py
"""Run qatch.

There are two main functionalities:

 - enable profiling (and optionally truncate the profiling collection)
 - identify and report slow queries
"""

# fmt:off

import argparse
import asyncio
import logging
import sys
from pprint import pprint
from typing import List, NoReturn, Optional, cast

import coloredlogs  # type: ignore[import]

from qatch.config import Config
from qatch.mongo import Mongo
from qatch.profiler import handle_options, InvalidInvocationError, Options

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """An ArgumentParser whose usage errors exit with 1, not 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line parser."""
    parser = ArgumentParser(description='Identify slow (un-indexed) MongoDB queries')
    parser.add_argument('--begin', action='store_true',
                        help='Enable profiling of all operations')
    parser.add_argument('--report', action='store_true',
                        help='Report slow queries, and exit with 1 if there are any')
    parser.add_argument('--clean', action='store_true',
                        help='Drop the system.profile collection (before --begin, after --report)')
    parser.add_argument('--mongo-uri', default=None,
                        help='MongoDB URI (overrides MONGODB_URI)')
    parser.add_argument('--show-config-spec', action='store_true',
                        help='Print configuration specification, including defaults, and exit')
    return parser


def parse_options(args: argparse.Namespace, config: Config) -> Options:
    """Get the invocation options, falling back on `config` for the URI."""
    return Options(begin      = bool(args.begin),                                       # noqa: E221, E241, E251
                   report     = bool(args.report),                                      # noqa: E221, E241, E251
                   clean      = bool(args.clean),                                       # noqa: E221, E241, E251
                   mongo_uri  = cast(str, args.mongo_uri or config['MONGODB_URI']))     # noqa: E221, E241, E251


async def main(options: Options, config: Config) -> bool:
    """Run qatch, return True if slow queries were found."""
    def connect(uri: str) -> Mongo:
        return Mongo(uri,
                     authSource               = cast(Optional[str], config['MONGODB_AUTH_SOURCE_DB']),        # noqa: E221, E241, E251
                     serverSelectionTimeoutMS = cast(int, config['MONGODB_SERVER_SELECTION_TIMEOUT_MS']))     # noqa: E221, E241, E251

    return await handle_options(options, connect)


def main_sync(argv: Optional[List[str]] = None) -> None:
    """Do synchronous setup, run qatch, and exit with its status."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.show_config_spec:
        pprint(Config.SPEC)
        parser.exit()

    config = Config()
    config.update_from_env()

    coloredlogs.install(level=('DEBUG' if config['DEBUG'] else 'INFO'))
    logger.debug(f"config: {config.loggable()}")

    options = parse_options(args, config)

    try:
        found = asyncio.run(main(options, config))
    except InvalidInvocationError as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    except Exception:
        logging.fatal('an error was encountered, displaying the error and then exiting', exc_info=True)
        sys.exit(1)

    sys.exit(1 if found else 0)


if __name__ == '__main__':
    main_sync()
