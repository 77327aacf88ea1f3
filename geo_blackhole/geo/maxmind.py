#!/usr/bin/env python3
"""
Country database reader

Enumerates the IPv4 networks of a MaxMind-format country database (GeoIP2,
GeoLite2 or DB-IP country) and groups them by ISO country code.
"""

import ipaddress
import logging
from typing import Dict, Iterable, List, Optional

import maxminddb

from geo_blackhole.utils.error_handling import GeoDatabaseError


def record_country(record) -> Optional[str]:
    """ISO code of a database record: located country, else registered country"""
    if not isinstance(record, dict):
        return None
    for key in ("country", "registered_country"):
        country = record.get(key)
        if isinstance(country, dict) and country.get("iso_code"):
            return country["iso_code"].upper()
    return None


class GeoCountryReader:
    """Scoped reader over a country database"""

    REQUIRED_TYPE_MARKER = "Country"

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        self.path = path
        self.logger = logger or logging.getLogger("geo-blackhole.geoip")
        self.reader = None
        self.database_type: Optional[str] = None

    def open(self):
        """
        Open the database and check its declared type

        Raises:
            GeoDatabaseError: If the file cannot be opened or is not a country database
        """
        try:
            self.reader = maxminddb.open_database(self.path)
        except (OSError, ValueError, maxminddb.InvalidDatabaseError) as e:
            raise GeoDatabaseError(
                f"Can't open country database {self.path}",
                guidance="Check geoip.path and that the file is a valid .mmdb",
                technical_details=str(e),
            )

        metadata = self.reader.metadata()
        self.database_type = metadata.database_type
        if self.REQUIRED_TYPE_MARKER not in (self.database_type or ""):
            self.close()
            raise GeoDatabaseError(
                f"Database {self.path} has type '{self.database_type}', expected a country database",
                guidance="Use a GeoIP2-Country, GeoLite2-Country or DB-IP country database",
            )

        self.logger.info(
            f"Opened {self.database_type} database {self.path} "
            f"(build epoch {metadata.build_epoch}, {metadata.node_count} nodes)"
        )

    def close(self):
        if self.reader is not None:
            self.reader.close()
            self.reader = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def country_prefixes(self, iso_codes: Iterable[str]) -> Dict[str, List[ipaddress.IPv4Network]]:
        """
        Collect IPv4 networks for several countries in a single pass

        Returns:
            Mapping with one (possibly empty) list per requested code; ordering
            follows the database tree and carries no meaning
        """
        if self.reader is None:
            raise GeoDatabaseError("Country database is not open")

        wanted = {code.upper() for code in iso_codes}
        result: Dict[str, List[ipaddress.IPv4Network]] = {code: [] for code in wanted}
        scanned = 0

        for network, record in self.reader:
            scanned += 1
            if network.version != 4:
                continue
            country = record_country(record)
            if country in wanted:
                result[country].append(network)

        self.logger.debug(f"Scanned {scanned} database networks for {len(wanted)} countries")
        return result

    def lookup_country_prefixes(self, iso_code: str) -> List[ipaddress.IPv4Network]:
        """IPv4 networks for one ISO country code"""
        return self.country_prefixes([iso_code])[iso_code.upper()]
