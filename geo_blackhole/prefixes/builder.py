"""
Desired Block Set Builder

Turns per-country prefix lists and an allow-list of host addresses into the
minimal CIDR covering of (union of country prefixes) minus (allow-listed hosts).
"""

import ipaddress
import logging
from typing import Iterable, List, Mapping, Optional

from geo_blackhole.models import BuildStatistics, parse_prefix
from geo_blackhole.prefixes.ranges import AddressRangeSet


def parse_allow_entry(entry) -> ipaddress.IPv4Address:
    """
    Parse one allow-list entry as a single IPv4 host address.

    Raises:
        ValueError: For prefixes (any "/len" form), IPv6 or garbage
    """
    if isinstance(entry, ipaddress.IPv4Address):
        return entry
    if not isinstance(entry, str):
        raise ValueError(f"Allow-list entry must be a string, got {type(entry).__name__}")
    if "/" in entry:
        raise ValueError(f"Allow-list entry must be a host address, not a prefix: {entry}")
    return ipaddress.IPv4Address(entry.strip())


class PrefixSetBuilder:
    """Build the desired blackhole prefix set"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("geo-blackhole.builder")
        self.statistics = BuildStatistics()

    def build(self, country_lists: Mapping[str, Iterable], allow: Iterable) -> List[ipaddress.IPv4Network]:
        """
        Compute the desired block prefix list

        Args:
            country_lists: ISO country code -> prefixes (strings or IPv4Network)
            allow: Host addresses that must never be blocked

        Returns:
            Minimal disjoint CIDR prefixes in ascending address order
        """
        self.statistics = BuildStatistics()
        blocked = AddressRangeSet()

        for country in sorted(country_lists):
            accepted = 0
            for raw in country_lists[country]:
                try:
                    network = parse_prefix(raw)
                except ValueError as e:
                    self.statistics.skipped_prefixes += 1
                    self.logger.warning(f"Skipping malformed prefix {raw!r} for {country}: {e}")
                    continue
                blocked.add_network(network)
                accepted += 1

            self.statistics.country_prefix_counts[country] = accepted
            if accepted == 0:
                self.logger.warning(f"Country {country} contributed no prefixes")
            else:
                self.logger.debug(f"Country {country}: {accepted} prefixes")

        self.logger.info(
            f"Union of {len(country_lists)} countries: {len(blocked)} ranges, "
            f"{blocked.address_count} addresses"
        )

        for entry in allow:
            try:
                address = parse_allow_entry(entry)
            except ValueError as e:
                self.statistics.rejected_allow_entries += 1
                self.logger.warning(f"Rejecting allow-list entry {entry!r}: {e}")
                continue

            if blocked.remove_address(int(address)):
                self.statistics.allowed_hosts_removed += 1
                self.logger.info(f"Excluded allow-listed host {address} from blocked ranges")
            else:
                self.logger.debug(f"Allow-listed host {address} is not inside any blocked range")

        prefixes = blocked.to_prefixes()
        self.statistics.output_prefixes = len(prefixes)
        self.logger.info(f"Desired block set: {len(prefixes)} prefixes")
        return prefixes
