__all__ = ['main']

import sys

import bgwallet.startup # pylint: disable=unused-import
from bgwallet.main import main as _main


def main() -> None:
    sys.exit(_main())
