from __future__ import annotations
from copy import deepcopy
import json
import os
import stat
import threading
from typing import Any, Callable, cast, Type, TypeVar

from mypy_extensions import DefaultArg

from .constants import DEBUG_ENVIRONMENT_KEY, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_SYNC_TIMEOUT
from .logs import logs
from .platform import platform
from .util import generate_access_token, make_dir


logger = logs.get_logger("config")


FINAL_CONFIG_VERSION = 1

# Config keys that may also be given in the environment. These rank below the command line and
# above the user config file.
ENVIRONMENT_KEYS = {
    "host": "BGWALLET_HOST",
    "port": "BGWALLET_PORT",
    "debug": DEBUG_ENVIRONMENT_KEY,
}

DEPRECATED_KEYS = { "sync": "sync_enabled" }

T = TypeVar('T')


def read_environment_options(environ: dict[str, str]|None=None) -> dict[str, Any]:
    if environ is None:
        environ = cast(dict[str, str], os.environ)
    options: dict[str, Any] = {}
    for key, environment_key in ENVIRONMENT_KEYS.items():
        value = environ.get(environment_key)
        if not value:
            continue
        if key == "port":
            try:
                options[key] = int(value)
            except ValueError:
                logger.error("Ignoring invalid %s value '%s'", environment_key, value)
        elif key == "debug":
            options[key] = value.lower() not in ("0", "false", "no")
        else:
            options[key] = value
    return options


class SimpleConfig:
    """
    The SimpleConfig class is responsible for handling operations involving
    configuration files.

    There are three different sources of possible configuration values:
        1. Command line options.
        2. Environment variables (`BGWALLET_HOST`, `BGWALLET_PORT`, `BGWALLET_DEBUG`).
        3. User configuration (in the user's config directory)
    They are taken in order (1. overrides config options set in 2. and 3.)
    """

    def __init__(self, options: dict[str, Any]|None=None,
            read_user_config_function: Callable[[str], dict[str, Any]]|None=None,
            read_user_dir_function: Callable[[DefaultArg(bool, 'prefer_local')], str]|None=None,
            environ: dict[str, str]|None=None) -> None:

        if options is None:
            options = {}

        # This lock needs to be acquired for updating and reading the config in
        # a thread-safe way.
        self.lock = threading.RLock()

        # The following functions are there for dependency injection when testing.
        if read_user_config_function is None:
            read_user_config_function = read_user_config
        if read_user_dir_function is None:
            self.user_dir = platform.user_dir
        else:
            self.user_dir = read_user_dir_function

        # The command line options, with the environment filling in what was not given.
        self.cmdline_options = read_environment_options(environ)
        self.cmdline_options.update({ k: v for k, v in deepcopy(options).items()
            if v is not None })
        # don't allow to be set on CLI:
        self.cmdline_options.pop('config_version', None)

        # Set self.path and read the user config
        self.user_config: dict[str, Any] = {}  # for self.get in bgwallet_path()
        self.path = self.bgwallet_path()
        self.user_config = read_user_config_function(self.path)
        if not self.user_config:
            self.user_config = {'config_version': FINAL_CONFIG_VERSION}

        self.rename_config_keys(self.cmdline_options, DEPRECATED_KEYS, True)
        if self.rename_config_keys(self.user_config, DEPRECATED_KEYS, True):
            self.save_user_config()

    def bgwallet_path(self) -> str:
        # Read bgwallet_path from command line
        # Otherwise use the user's default data directory.
        path = cast(str, self.get('bgwallet_path'))
        if path is None:
            path = self.user_dir()

        make_dir(path)
        logger.debug("bgwallet directory '%s'", path)
        return os.path.abspath(path)

    def file_path(self, file_name: str) -> str:
        return os.path.join(self.path, file_name)

    def rename_config_keys(self, config: dict[str, Any], keypairs: dict[str, str],
            deprecation_warning: bool=False) -> bool:
        """Migrate old key names to new ones"""
        updated = False
        for old_key, new_key in keypairs.items():
            if old_key in config:
                if new_key not in config:
                    config[new_key] = config[old_key]
                    if deprecation_warning:
                        logger.warning('Note that the %s variable has been deprecated. '
                              'You should use %s instead.', old_key, new_key)
                del config[old_key]
                updated = True
        return updated

    def set_key(self, key: str, value: Any, save: bool=True) -> None:
        if not self.is_modifiable(key):
            logger.warning("Not changing config key '%s' set on the command line", key)
            return
        with self.lock:
            if value is not None:
                self.user_config[key] = value
            else:
                self.user_config.pop(key, None)
            if save:
                self.save_user_config()

    def get(self, key: str, default: Any=None) -> Any|None:
        with self.lock:
            out = self.cmdline_options.get(key)
            if out is None:
                out = self.user_config.get(key, default)
        return out

    def get_optional_type(self, return_type: Type[T], key: str, default: T|None=None) -> T|None:
        with self.lock:
            value = self.cmdline_options.get(key)
            if value is None:
                value = self.user_config.get(key, default)
        assert value == default or isinstance(value, return_type)
        return cast(T, value)

    def get_explicit_type(self, return_type: Type[T], key: str, default: T) -> T:
        with self.lock:
            value: T|None = self.cmdline_options.get(key)
            if value is None:
                value = cast(T, self.user_config.get(key, default))
        assert isinstance(value, return_type)
        return value

    def is_modifiable(self, key: str) -> bool:
        return key not in self.cmdline_options

    def save_user_config(self) -> None:
        if not self.path or self.get('ephemeral'):
            return
        path = os.path.join(self.path, "config")
        s = json.dumps(self.user_config, indent=4, sort_keys=True)
        with open(path, "w", encoding='utf-8') as f:
            f.write(s)
        os.chmod(path, stat.S_IREAD | stat.S_IWRITE)

    def is_debug(self) -> bool:
        return bool(self.get('debug', False))

    def get_host(self) -> str:
        return self.get_explicit_type(str, 'host', DEFAULT_HOST)

    def get_port(self) -> int:
        return self.get_explicit_type(int, 'port', DEFAULT_PORT)

    def get_sync_timeout(self) -> float:
        # The user config file is hand editable.
        value = self.get('sync_timeout', DEFAULT_SYNC_TIMEOUT)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            logger.error("Ignoring invalid sync_timeout value %r", value)
            return float(DEFAULT_SYNC_TIMEOUT)
        return float(value)

    def get_access_token(self) -> str:
        """
        The token the trusted user interface surfaces present to connect. It is generated on
        first use and kept in the user config.
        """
        access_token = self.get_optional_type(str, 'access_token')
        if access_token is None:
            access_token = generate_access_token()
            self.set_key('access_token', access_token)
        return access_token


def read_user_config(path: str) -> dict[str, Any]:
    """Parse and return the user config settings as a dictionary."""
    if not path:
        return {}
    config_path = os.path.join(path, "config")
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r", encoding='utf-8') as f:
            data = f.read()
        result = json.loads(data)
    except Exception:
        logger.exception("Cannot read config file %s.", config_path)
        return {}
    if not type(result) is dict:
        return {}
    return result
