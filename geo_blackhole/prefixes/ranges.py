"""
Sorted disjoint address-range set.

Ranges are kept as two parallel sorted lists (starts and ends). Any range that
overlaps or abuts an existing one is merged on insert, so the set is always
canonical: ascending, non-overlapping and non-adjacent.
"""

import ipaddress
from bisect import bisect_left, bisect_right
from typing import Iterable, Iterator, List

from geo_blackhole.models import IPV4_MAX, AddressRange


def cidr_blocks(start: int, end: int) -> Iterator[ipaddress.IPv4Network]:
    """
    Decompose [start, end] into the minimal list of CIDR-aligned prefixes.

    Each step emits the largest power-of-two block aligned on the current
    start that does not run past end.
    """
    if not (0 <= start <= end <= IPV4_MAX):
        raise ValueError(f"Invalid address range: {start}-{end}")

    while start <= end:
        # Largest block the alignment of start allows; address 0 is aligned to everything
        size = start & -start if start else 1 << 32
        while size > end - start + 1:
            size >>= 1
        prefixlen = 33 - size.bit_length()
        yield ipaddress.IPv4Network((start, prefixlen))
        start += size


class AddressRangeSet:
    """Set of IPv4 addresses stored as coalesced inclusive ranges"""

    def __init__(self, ranges: Iterable[AddressRange] = ()):
        self._starts: List[int] = []
        self._ends: List[int] = []
        for address_range in ranges:
            self.add(address_range)

    def add(self, address_range: AddressRange):
        """Union a range into the set, merging overlapping or touching neighbours"""
        start, end = address_range.start, address_range.end

        # First stored range whose end reaches start - 1 (touching counts)
        lo = bisect_left(self._ends, start - 1)
        hi = lo
        while hi < len(self._starts) and self._starts[hi] <= end + 1:
            start = min(start, self._starts[hi])
            end = max(end, self._ends[hi])
            hi += 1

        self._starts[lo:hi] = [start]
        self._ends[lo:hi] = [end]

    def add_network(self, network: ipaddress.IPv4Network):
        self.add(AddressRange.from_network(network))

    def remove_address(self, address: int) -> bool:
        """
        Remove a single address.

        The containing range is replaced by zero, one or two flanking ranges.
        Returns False when the address was not in the set.
        """
        index = bisect_right(self._starts, address) - 1
        if index < 0 or self._ends[index] < address:
            return False

        start, end = self._starts[index], self._ends[index]
        starts, ends = [], []
        if start < address:
            starts.append(start)
            ends.append(address - 1)
        if address < end:
            starts.append(address + 1)
            ends.append(end)

        self._starts[index:index + 1] = starts
        self._ends[index:index + 1] = ends
        return True

    def __contains__(self, address: int) -> bool:
        index = bisect_right(self._starts, address) - 1
        return index >= 0 and self._ends[index] >= address

    def __iter__(self) -> Iterator[AddressRange]:
        for start, end in zip(self._starts, self._ends):
            yield AddressRange(start, end)

    def __len__(self) -> int:
        return len(self._starts)

    @property
    def address_count(self) -> int:
        return sum(end - start + 1 for start, end in zip(self._starts, self._ends))

    def to_prefixes(self) -> List[ipaddress.IPv4Network]:
        """Minimal CIDR covering of the set, in ascending order"""
        prefixes = []
        for start, end in zip(self._starts, self._ends):
            prefixes.extend(cidr_blocks(start, end))
        return prefixes
