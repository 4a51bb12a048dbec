from .version import PACKAGE_VERSION

__all__ = [ "PACKAGE_VERSION" ]
