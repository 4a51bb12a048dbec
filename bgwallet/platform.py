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

'''Platform-specific customization for BGWallet'''

import os
import platform as os_platform
import webbrowser

from .logs import logs

logger = logs.get_logger("platform")


class Platform(object):
    name = 'unset platform'

    def user_dir(self, prefer_local: bool=False) -> str:
        home_dir = os.environ.get("HOME", ".")
        return os.path.join(home_dir, ".bgwallet")

    def open_url(self, url: str) -> bool:
        '''Open the URL in a new browser tab. Returns `False` if no browser could be used.'''
        try:
            return webbrowser.open_new_tab(url)
        except webbrowser.Error:
            logger.exception("Unable to open '%s'", url)
            return False


class Darwin(Platform):
    name = 'MacOSX'

    def user_dir(self, prefer_local: bool=False) -> str:
        return os.path.join(os.environ.get("HOME", "."), "Library", "Application Support",
            "BGWallet")


class Linux(Platform):
    name = 'Linux'


class Unix(Platform):
    name = 'Unix'


class Windows(Platform):
    name = 'Windows'

    def user_dir(self, prefer_local: bool=False) -> str:
        app_dir = os.environ.get("APPDATA")
        localapp_dir = os.environ.get("LOCALAPPDATA")
        if not app_dir or (localapp_dir and prefer_local):
            app_dir = localapp_dir
        return os.path.join(app_dir or ".", "BGWallet")


def _detect() -> Platform:
    system = os_platform.system()
    cls: type
    if system == 'Darwin':
        cls = Darwin
    elif system == 'Linux':
        cls = Linux
    elif system == 'Windows':
        cls = Windows
    elif system in ('FreeBSD', 'NetBSD', 'OpenBSD', 'DragonFly'):
        cls = Unix
    else:
        logger.warning('unknown system "%s"; falling back to Unix.  Please report this.', system)
        cls = Unix
    logs.root.debug(f'using platform class {cls.__name__} for system "{system}"')
    return cls()


platform = _detect()
