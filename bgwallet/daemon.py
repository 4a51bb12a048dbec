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

from __future__ import annotations

import asyncio
import json
import os
import signal
import time
from typing import Any, List, Optional

import requests

from .badge import BadgeAggregator
from .constants import InstallReason, POPUP_URL, STORAGE_FILENAME, WELCOME_URL
from .controller import WalletController
from .exceptions import DaemonAlreadyRunningError
from .first_time_state import FIRST_TIME_STATE
from .host import HostBadge, HostServer
from .logs import logs
from .migrations import MIGRATIONS
from .migrator import Migrator
from .multiplexer import ConnectionMultiplexer
from .notifications import NotificationManager, PopupTrigger, UrlOpenerProtocol
from .persistence import PersistencePipeline
from .platform import platform as default_platform
from .simple_config import SimpleConfig
from .state_loader import load_state_from_persistence
from .storage import AbstractStore, AbstractSyncStore, JSONFileStore, MemoryStore, \
    NullSyncStore, RemoteSyncStore
from .types import ApplicationState, LoadResult


logger = logs.get_logger("daemon")


def get_lockfile_path(config: SimpleConfig) -> str:
    return os.path.join(config.path, 'daemon')


def remove_lockfile(lockfile_path: str) -> None:
    logger.debug("Removing lockfile")
    try:
        os.unlink(lockfile_path)
    except OSError:
        pass


def get_lockfile_fd(config: SimpleConfig) -> Optional[int]:
    """
    Tries to create the lockfile using O_EXCL to prevent races.  If it succeeds it returns the
    file descriptor. Otherwise it tries to connect to the server specified in the lockfile and if
    this succeeds, `None` is returned.  Otherwise, the lockfile is removed and we loop.
    """
    lockfile_path = get_lockfile_path(config)
    while True:
        try:
            return os.open(lockfile_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except OSError:
            pass

        result = remote_daemon_request(config, "/v1/ping")
        if not isinstance(result, dict) or "error" not in result:
            # This is a valid response.
            return None
        # Couldn't connect; remove lockfile and try again.
        remove_lockfile(lockfile_path)


def write_lockfile(fd: int, host: str, port: int) -> None:
    # The daemon's address is what other processes need to know, in order to talk to it.
    lockfile_text = json.dumps([ [host, port], time.time() ])
    os.write(fd, lockfile_text.encode())
    os.close(fd)


def remote_daemon_request(config: SimpleConfig, url_path: str) -> Any:
    lockfile_path = get_lockfile_path(config)
    if not os.path.exists(lockfile_path):
        return { "error": "Daemon not running" }

    with open(lockfile_path) as f:
        text = f.read()
        if text == "":
            return { "error": "corrupt lockfile" }
        (host, port), _create_time = json.loads(text)

    assert not url_path.startswith("http") and host not in url_path
    url = f"http://{host}:{port}{url_path}"
    headers = { "Authorization": f"Bearer {config.get_access_token()}" }
    try:
        response = requests.get(url, headers=headers, timeout=10)
    except requests.exceptions.ConnectionError:
        return { "error": "Daemon not connectable" }
    except requests.exceptions.ReadTimeout:
        return { "error": "Daemon request timed out" }
    if not response.ok:
        return { "error": f"Daemon errored processing the request: '{response.reason}'" }
    return response.json()


def create_primary_store(config: SimpleConfig) -> AbstractStore:
    if config.get('ephemeral'):
        return MemoryStore()
    return JSONFileStore(config.file_path(STORAGE_FILENAME))


def create_secondary_store(config: SimpleConfig) -> AbstractSyncStore:
    sync_url = config.get_optional_type(str, 'sync_url')
    if sync_url is None:
        return NullSyncStore()
    return RemoteSyncStore(sync_url,
        enabled=config.get_explicit_type(bool, 'sync_enabled', False),
        token=config.get_optional_type(str, 'sync_token'),
        timeout=config.get_sync_timeout())


def get_install_reason(load_result: LoadResult, latest_version: int) -> Optional[InstallReason]:
    if load_result.stored_version is None:
        return InstallReason.INSTALL
    if load_result.stored_version < latest_version:
        return InstallReason.UPDATE
    return None


class Daemon:
    '''
    Owns the background process. The state is fully loaded, migrated and written back before
    the controller exists, and everything is wired to the controller before the host server
    accepts any channel.
    '''

    controller: Optional[WalletController] = None
    pipeline: Optional[PersistencePipeline] = None
    multiplexer: Optional[ConnectionMultiplexer] = None
    popup_trigger: Optional[PopupTrigger] = None
    badge_aggregator: Optional[BadgeAggregator] = None
    host_server: Optional[HostServer] = None

    def __init__(self, config: SimpleConfig, platform: Optional[UrlOpenerProtocol]=None,
            primary: Optional[AbstractStore]=None, secondary: Optional[AbstractSyncStore]=None,
            migrator: Optional[Migrator]=None) -> None:
        self.config = config
        self.platform = platform if platform is not None else default_platform
        self.primary = primary if primary is not None else create_primary_store(config)
        self.secondary = secondary if secondary is not None else create_secondary_store(config)
        self.migrator = migrator if migrator is not None else Migrator(MIGRATIONS)
        self.badge = HostBadge()
        self._stop_event = asyncio.Event()

    async def initialize_async(self) -> None:
        """
        Raises `StateLoadError` if the stored state cannot be read.
        Raises `MigrationError` if the stored state cannot be brought up to date.
        """
        load_result = await load_state_from_persistence(self.primary, self.secondary,
            self.migrator, FIRST_TIME_STATE)
        self.setup_controller(load_result.data)

        install_reason = get_install_reason(load_result, self.migrator.latest_version)
        if install_reason is not None:
            self.on_installed(install_reason)

        logger.debug("initialization complete")

    def setup_controller(self, init_state: ApplicationState) -> WalletController:
        self.controller = WalletController(init_state=init_state, platform=self.platform,
            on_unconfirmed_message=self.trigger_ui, on_unlock_request=self.trigger_ui,
            on_unapproved_tx=self.trigger_ui)

        self.pipeline = PersistencePipeline(self.primary, self.secondary)
        self.pipeline.start(self.controller.events)

        self.multiplexer = ConnectionMultiplexer(self.controller)

        notification_manager = NotificationManager(self.platform,
            self.config.get_explicit_type(str, 'popup_url', POPUP_URL))
        self.popup_trigger = PopupTrigger(self.multiplexer, notification_manager)

        self.badge_aggregator = BadgeAggregator(self.controller, self.badge)
        self.badge_aggregator.start()

        self.host_server = HostServer(self.config.get_host(), self.config.get_port(),
            self.config.get_access_token(), self.multiplexer.connect_remote, self.badge,
            self.multiplexer)
        return self.controller

    def trigger_ui(self) -> None:
        assert self.popup_trigger is not None
        self.popup_trigger.trigger_ui()

    def on_installed(self, reason: InstallReason) -> None:
        logger.debug("installed with reason '%s'", reason.value)
        if reason == InstallReason.INSTALL and not self.config.is_debug():
            self.platform.open_url(WELCOME_URL)

    def stop(self) -> None:
        self._stop_event.set()

    async def run_async(self) -> None:
        await self.initialize_async()
        assert self.host_server is not None

        loop = asyncio.get_running_loop()
        signals: List[signal.Signals] = []
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.stop)
            except NotImplementedError:
                # Windows event loops do not support signal handlers.
                continue
            signals.append(signum)

        try:
            await self.host_server.start_async()
            await self._stop_event.wait()
        finally:
            for signum in signals:
                loop.remove_signal_handler(signum)
            await self.shutdown_async()

    async def shutdown_async(self) -> None:
        logger.debug("shutting down")
        if self.host_server is not None:
            await self.host_server.stop_async()
        if self.badge_aggregator is not None:
            self.badge_aggregator.stop()
        if self.pipeline is not None:
            await self.pipeline.stop_async()
        await self.secondary.close_async()
        self.primary.close()


def run_daemon(config: SimpleConfig) -> None:
    """
    Run the daemon in the foreground until it is signalled to stop.

    Raises `DaemonAlreadyRunningError` if another daemon is using the same data directory.
    """
    fd = get_lockfile_fd(config)
    if fd is None:
        raise DaemonAlreadyRunningError(f"a daemon is already running for '{config.path}'")

    lockfile_path = get_lockfile_path(config)
    write_lockfile(fd, config.get_host(), config.get_port())
    try:
        asyncio.run(Daemon(config).run_async())
    finally:
        remove_lockfile(lockfile_path)
