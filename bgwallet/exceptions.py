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

from typing import Any, Dict, Optional


class StateLoadError(Exception):
    pass


class MigrationListError(Exception):
    pass


class MigrationError(Exception):
    '''A migration transform raised. The document is the one as of the last successful
    migration, which is what remains safe to persist.'''
    version: int
    document: Dict[str, Any]

    def __init__(self, version: int, document: Dict[str, Any]) -> None:
        super().__init__(version, document)

        self.version = version
        self.document = document

    def __str__(self) -> str:
        return f"migration {self.version} failed, document remains at version " \
            f"{self.document['version']}"


class SecondaryStoreError(Exception):
    pass


class InvalidOriginError(Exception):
    pass


class ChannelClosedError(Exception):
    pass


class DaemonAlreadyRunningError(Exception):
    pass


class RPCError(Exception):
    code: int
    message: str

    def __init__(self, code: int, message: str, data: Optional[Any]=None) -> None:
        super().__init__(code, message)

        self.code = code
        self.message = message
        self.data = data
