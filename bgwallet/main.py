# BGWallet - wallet background process
# Copyright (C) 2019-2020 The BGWallet Developers
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation files
# (the "Software"), to deal in the Software without restriction,
# including without limitation the rights to use, copy, modify, merge,
# publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so,
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS
# BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN
# ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
# CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import argparse
import asyncio
import os
import sys
import time
from typing import Any, Dict, List, Optional

from .daemon import create_primary_store, create_secondary_store, remote_daemon_request, \
    run_daemon
from .exceptions import DaemonAlreadyRunningError, MigrationError, MigrationListError, \
    StateLoadError
from .first_time_state import FIRST_TIME_STATE
from .logs import logs
from .migrations import MIGRATIONS
from .migrator import Migrator
from .simple_config import SimpleConfig
from .state_loader import load_state_from_persistence
from .util import json_encode
from .version import PACKAGE_VERSION


logger = logs.get_logger("main")


def add_global_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('global options')
    group.add_argument("-v", "--verbose", action="store", dest="verbose",
                       const='info', default=None, nargs='?',
                       choices = ('debug', 'info', 'warning', 'error'),
                       help="Set logging verbosity")
    group.add_argument("-D", "--dir", dest="bgwallet_path", help="BGWallet directory")
    group.add_argument("--debug", action="store_true", dest="debug", default=None,
                       help="Debug mode, log everything and skip the welcome page")
    group.add_argument("--file-logging", action="store_true", dest="file_logging", default=False,
                       help="Redirect logging to log file")
    group.add_argument("--ephemeral", action="store_true", dest="ephemeral", default=None,
                       help="Keep the wallet state in memory only")

    # Host server
    group.add_argument("--host", dest="host", help="Set the host server address")
    group.add_argument("--port", dest="port", type=int, help="Set the host server port")

    # Secondary store
    group.add_argument("--sync-url", dest="sync_url", help="Remote URL to mirror the state to")
    group.add_argument("--sync", action="store_true", dest="sync_enabled", default=None,
                       help="Mirror the state to the remote URL")
    group.add_argument("--no-sync", action="store_false", dest="sync_enabled", default=None,
                       help="Do not mirror the state to the remote URL")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        epilog="Run 'bgwallet <command> -h' to see the help for a command")
    parser.add_argument("--version", action="version", version=f"%(prog)s {PACKAGE_VERSION}")
    add_global_options(parser)
    subparsers = parser.add_subparsers(dest='cmd', metavar='<command>')
    subparsers.add_parser('daemon', help="Run the background process (default)")
    subparsers.add_parser('status', help="Show the status of the running background process")
    subparsers.add_parser('migrate',
        help="Bring the stored state up to date without running the background process")
    return parser


def get_config_options(argv: Optional[List[str]]=None) -> Dict[str, Any]:
    parser = get_parser()
    args = parser.parse_args(argv)

    # config is an object passed to various constructors
    config_options = {
        key: value for key, value in args.__dict__.items() if value is not None
    }
    config_options.setdefault('cmd', 'daemon')
    return config_options


def setup_logging(config: SimpleConfig, config_options: Dict[str, Any]) -> None:
    if config_options.get('verbose'):
        logs.set_level(config_options['verbose'])
    else:
        logs.set_default_level(config.is_debug())

    if config_options.get('file_logging'):
        log_path = os.path.join(config.path, "logs")
        os.makedirs(log_path, exist_ok=True)
        log_path = os.path.join(log_path, time.strftime("%Y%m%d-%H%M%S") + ".log")
        logs.add_file_output(log_path)


def is_daemon_running(config: SimpleConfig) -> bool:
    result = remote_daemon_request(config, "/v1/ping")
    return not isinstance(result, dict) or "error" not in result


async def migrate_async(config: SimpleConfig) -> int:
    primary = create_primary_store(config)
    secondary = create_secondary_store(config)
    try:
        load_result = await load_state_from_persistence(primary, secondary,
            Migrator(MIGRATIONS), FIRST_TIME_STATE)
    finally:
        await secondary.close_async()
        primary.close()
    return load_result.version


def run_status(config: SimpleConfig) -> int:
    result = remote_daemon_request(config, "/v1/status")
    print(json_encode(result))
    return 1 if isinstance(result, dict) and "error" in result else 0


def run_migrate(config: SimpleConfig) -> int:
    if is_daemon_running(config):
        print("The daemon is running, stop it before migrating.", file=sys.stderr)
        return 1
    version = asyncio.run(migrate_async(config))
    print(f"State is at version {version}")
    return 0


def main(argv: Optional[List[str]]=None) -> int:
    config_options = get_config_options(argv)
    config = SimpleConfig(config_options)
    setup_logging(config, config_options)

    cmdname = config_options['cmd']
    try:
        if cmdname == 'status':
            return run_status(config)
        elif cmdname == 'migrate':
            return run_migrate(config)

        run_daemon(config)
    except DaemonAlreadyRunningError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (StateLoadError, MigrationError, MigrationListError):
        logger.exception("Unable to load the wallet state")
        return 1
    return 0
