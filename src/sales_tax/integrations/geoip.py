"""IP geolocation backed by a MaxMind GeoIP2 city database."""

from __future__ import annotations

from typing import Any, Optional

import geoip2.database
import geoip2.errors

from ..utils.logging import get_logger

logger = get_logger(__name__)

# Lookup failures the tax engine treats as "location unknown".
GEOLOCATION_ERRORS = (geoip2.errors.GeoIP2Error, ValueError)


class GeoIpLocator:
    """Lazily opens the database on first lookup; usable as a context manager."""

    def __init__(self, database_path: str) -> None:
        if not database_path:
            raise ValueError("GEOIP_DATABASE_PATH is required")
        self._database_path = database_path
        self._reader: Optional[geoip2.database.Reader] = None

    def __enter__(self) -> "GeoIpLocator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def city(self, ip_address: str) -> Any:
        """Return the city record (``country.iso_code``, ``subdivisions[].name``)."""
        if self._reader is None:
            logger.debug("Opening GeoIP database %s", self._database_path)
            self._reader = geoip2.database.Reader(self._database_path)
        return self._reader.city(ip_address)

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
