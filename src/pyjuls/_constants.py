"""Internal constants shared across the library."""

from importlib.metadata import PackageNotFoundError, version

try:
    PACKAGE_VERSION = version("pyjuls")
except PackageNotFoundError:
    PACKAGE_VERSION = "0+local"

USER_AGENT = f"pyjuls/{PACKAGE_VERSION}"

LATEST_LOCATION_PATH = "/api/location/latest"
HEALTH_PATH = "/health"

# Reference position used by the test sender (Lima, Peru).
REFERENCE_LATITUDE = -12.0463731
REFERENCE_LONGITUDE = -77.042754
