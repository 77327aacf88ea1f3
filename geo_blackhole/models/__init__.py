"""
geo-blackhole Data Models

Value types shared by the prefix builder, the reconciliation engine and the
attribute encoder. Everything here lives for a single run.
"""

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

IPV4_MAX = (1 << 32) - 1

# BGP ORIGIN attribute values (RFC 4271)
ORIGIN_IGP = 0
ORIGIN_EGP = 1
ORIGIN_INCOMPLETE = 2


def parse_prefix(value) -> ipaddress.IPv4Network:
    """
    Parse an IPv4 prefix in canonical form.

    Accepts strings or ipaddress networks. Host bits must be zero.

    Raises:
        ValueError: If the value is not a canonical IPv4 prefix
    """
    if isinstance(value, ipaddress.IPv4Network):
        return value
    if isinstance(value, ipaddress.IPv6Network):
        raise ValueError(f"Not an IPv4 prefix: {value}")
    if not isinstance(value, str) or "/" not in value:
        raise ValueError(f"Not a prefix in address/length form: {value!r}")
    return ipaddress.IPv4Network(value.strip(), strict=True)


@dataclass(frozen=True, order=True)
class AddressRange:
    """Inclusive [start, end] interval of 32-bit addresses"""

    start: int
    end: int

    def __post_init__(self):
        if not (0 <= self.start <= self.end <= IPV4_MAX):
            raise ValueError(f"Invalid address range: {self.start}-{self.end}")

    @classmethod
    def from_network(cls, network: ipaddress.IPv4Network) -> "AddressRange":
        return cls(int(network.network_address), int(network.broadcast_address))

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def __contains__(self, address: int) -> bool:
        return self.start <= address <= self.end

    def __str__(self) -> str:
        return f"{ipaddress.IPv4Address(self.start)}-{ipaddress.IPv4Address(self.end)}"


@dataclass(frozen=True)
class PathAttributes:
    """Path description for one announce or withdraw call"""

    prefix: ipaddress.IPv4Network
    origin: int
    next_hop: ipaddress.IPv4Address
    communities: Tuple[int, ...] = ()
    withdraw: bool = False


@dataclass(frozen=True)
class ReconciliationPlan:
    """Prefixes to withdraw and announce, keyed by canonical string form"""

    to_withdraw: FrozenSet[str] = frozenset()
    to_announce: FrozenSet[str] = frozenset()
    unchanged: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.to_withdraw and not self.to_announce

    def to_summary(self) -> str:
        return (f"{len(self.to_withdraw)} to withdraw, {len(self.to_announce)} to announce, "
                f"{len(self.unchanged)} unchanged")


class Action(Enum):
    ANNOUNCE = "announce"
    WITHDRAW = "withdraw"


@dataclass
class OperationResult:
    """Outcome of a single plan item"""

    prefix: str
    action: Action
    success: bool
    error_message: Optional[str] = None


@dataclass
class BuildStatistics:
    """Counters collected while building the desired block set"""

    country_prefix_counts: Dict[str, int] = field(default_factory=dict)
    skipped_prefixes: int = 0
    rejected_allow_entries: int = 0
    allowed_hosts_removed: int = 0
    output_prefixes: int = 0


@dataclass
class ReconciliationReport:
    """Result of executing a reconciliation plan"""

    plan: ReconciliationPlan
    results: List[OperationResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failures(self) -> List[OperationResult]:
        return [r for r in self.results if not r.success]

    @property
    def success(self) -> bool:
        return not self.failures

    def count(self, action: Action, success: bool = True) -> int:
        return sum(1 for r in self.results if r.action is action and r.success is success)

    def to_summary(self) -> str:
        """Generate a summary string of the run"""
        lines = [
            f"Reconciliation {'planned (dry run)' if self.dry_run else ('succeeded' if self.success else 'completed with failures')}",
            f"Withdrawn: {self.count(Action.WITHDRAW)}/{len(self.plan.to_withdraw)}",
            f"Announced: {self.count(Action.ANNOUNCE)}/{len(self.plan.to_announce)}",
            f"Unchanged: {len(self.plan.unchanged)}",
        ]

        failures = self.failures
        if failures:
            lines.append(f"Failures: {len(failures)}")
            for failure in failures[:3]:
                lines.append(f"  - {failure.action.value} {failure.prefix}: {failure.error_message}")

        return "\n".join(lines)
