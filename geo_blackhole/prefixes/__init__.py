"""
Prefix set algebra: range coalescing, point removal and CIDR decomposition.
"""

from .builder import PrefixSetBuilder, parse_allow_entry
from .ranges import AddressRangeSet, cidr_blocks

__all__ = [
    "PrefixSetBuilder",
    "AddressRangeSet",
    "cidr_blocks",
    "parse_allow_entry",
]
