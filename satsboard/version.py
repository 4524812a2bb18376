# satsboard/version.py

import os
from datetime import UTC, datetime

SERVICE_NAME = "satsboard-proxy"
SERVICE_VERSION = "0.1.0"

# Stamped by the container build; "local" for dev runs
COMMIT = os.getenv("SATSBOARD_COMMIT", "local")
BUILD_TIME = os.getenv("SATSBOARD_BUILD_TIME") or datetime.now(tz=UTC).isoformat()


def version_payload() -> dict:
    """Used by the /version endpoint."""
    return {
        "service": f"{SERVICE_NAME}:{SERVICE_VERSION}",
        "service_version": SERVICE_VERSION,
        "commit": COMMIT,
        "build_time": BUILD_TIME,
    }
