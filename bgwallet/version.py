PACKAGE_VERSION = '0.4.0'                          # version of the background process package
PACKAGE_DATE = '2026-10-16T12:00:00.000000+00:00'  # official timestamp for the package
