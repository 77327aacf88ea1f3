"""
Active route table snapshot
"""

import ipaddress
import logging
from typing import List, Optional

from geo_blackhole.bgp.base import RoutingDaemonClient
from geo_blackhole.models import parse_prefix


class RouteTableSnapshot:
    """Prefixes currently announced by this speaker for IPv4 unicast"""

    def __init__(self, client: RoutingDaemonClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger("geo-blackhole.snapshot")
        self.skipped: List[str] = []

    def fetch(self) -> List[ipaddress.IPv4Network]:
        """
        Fetch the complete active prefix list.

        Malformed entries are skipped with a warning; listing failures from the
        client (SnapshotError) propagate, since a partial table must never be
        reconciled against.
        """
        self.skipped = []
        prefixes = []
        seen = set()

        for raw in self.client.list_active_ipv4_unicast_prefixes():
            try:
                prefix = parse_prefix(raw)
            except ValueError as e:
                self.skipped.append(raw)
                self.logger.warning(f"Skipping malformed active prefix {raw!r}: {e}")
                continue
            if prefix not in seen:
                seen.add(prefix)
                prefixes.append(prefix)

        if not prefixes:
            self.logger.info("No active blackhole prefixes announced")
        else:
            self.logger.info(f"Active route table: {len(prefixes)} prefixes")
        return prefixes
