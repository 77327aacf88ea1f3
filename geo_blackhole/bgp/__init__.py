"""
BGP speaker integration: path attributes, gobgp client and route table snapshot.
"""

from .attributes import AttributeEncoder, encode_community, parse_community, validate_next_hop
from .base import RoutingDaemonClient
from .gobgp_client import GoBGPClient
from .snapshot import RouteTableSnapshot

__all__ = [
    "AttributeEncoder",
    "encode_community",
    "parse_community",
    "validate_next_hop",
    "RoutingDaemonClient",
    "GoBGPClient",
    "RouteTableSnapshot",
]
