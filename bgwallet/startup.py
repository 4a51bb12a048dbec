import sys

MINIMUM_PYTHON_VERSION = (3, 10, 0)

vtuple = sys.version_info[:3]
if vtuple < MINIMUM_PYTHON_VERSION:
    fv = lambda parts: '.'.join(str(part) for part in parts)
    sys.exit('error: BGWallet requires Python version {} or higher; you are running Python {}'
             .format(fv(MINIMUM_PYTHON_VERSION), fv(vtuple)))
