"""
Path attribute encoding for blackhole announcements.

Community packing: a configured pair "A:B" is sent as (B << 16) | A, with the
second value in the high-order 16 bits. Downstream blackhole consumers match
on exactly this layout, which is the reverse of the RFC 1997 reading.
"""

import ipaddress
import logging
from typing import Iterable, List, Optional, Tuple

from geo_blackhole.models import ORIGIN_IGP, PathAttributes, parse_prefix
from geo_blackhole.utils.error_handling import ConfigurationError

UINT16_MAX = 0xFFFF


def encode_community(first: int, second: int) -> int:
    """Pack a community pair with the second value in the high 16 bits"""
    if not (0 <= first <= UINT16_MAX and 0 <= second <= UINT16_MAX):
        raise ValueError(f"Community values must be 0-{UINT16_MAX}: {first}:{second}")
    return (second << 16) | first


def parse_community(text: str) -> int:
    """
    Parse "A:B" into its packed 32-bit value

    Raises:
        ValueError: Unless text is exactly two colon-separated 16-bit decimals
    """
    if not isinstance(text, str):
        raise ValueError(f"Community must be a string, got {type(text).__name__}")
    parts = text.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Community must be two colon-separated decimal values: {text!r}")
    return encode_community(int(parts[0]), int(parts[1]))


def validate_next_hop(next_hop) -> ipaddress.IPv4Address:
    """
    Validate the configured next hop as a single IPv4 host address

    Raises:
        ConfigurationError: If missing, IPv6, a prefix or unparseable
    """
    if not next_hop:
        raise ConfigurationError(
            "Next hop is not configured",
            guidance="Set blackhole.next_hop or GEO_BLACKHOLE_NEXT_HOP to an IPv4 address",
        )
    try:
        return ipaddress.IPv4Address(str(next_hop).strip())
    except ValueError as e:
        raise ConfigurationError(
            f"Next hop is not a valid IPv4 host address: {next_hop}",
            guidance="Use a single IPv4 address such as 192.0.2.1",
            technical_details=str(e),
        )


class AttributeEncoder:
    """Build the path attribute bundle for announce and withdraw calls"""

    def __init__(self, next_hop, communities: Iterable[str] = (), logger: Optional[logging.Logger] = None):
        """
        Args:
            next_hop: Configured IPv4 next hop (validated here, once)
            communities: "A:B" community strings; malformed entries are dropped

        Raises:
            ConfigurationError: If next_hop is not a valid IPv4 host address
        """
        self.logger = logger or logging.getLogger("geo-blackhole.attributes")
        self.next_hop = validate_next_hop(next_hop)
        self.communities = self._parse_communities(communities)

    def _parse_communities(self, communities: Iterable[str]) -> Tuple[int, ...]:
        encoded: List[int] = []
        for text in communities:
            try:
                value = parse_community(text)
            except ValueError as e:
                self.logger.warning(f"Skipping community {text!r}: {e}")
                continue
            self.logger.debug(f"Community {text} encoded as 0x{value:08X}")
            encoded.append(value)
        return tuple(encoded)

    def encode(self, prefix, withdraw: bool = False) -> PathAttributes:
        """
        Describe one announce or withdraw operation

        Origin is always IGP; gobgpd expects a full path for withdrawals too.
        """
        return PathAttributes(
            prefix=parse_prefix(prefix),
            origin=ORIGIN_IGP,
            next_hop=self.next_hop,
            communities=self.communities,
            withdraw=withdraw,
        )
