"""
Routing daemon client interface
"""

from abc import ABC, abstractmethod
from typing import List

from geo_blackhole.models import PathAttributes


class RoutingDaemonClient(ABC):
    """Operations the reconciliation pass needs from the local BGP speaker"""

    @abstractmethod
    def list_active_ipv4_unicast_prefixes(self) -> List[str]:
        """
        Return every IPv4 unicast prefix this process currently announces.

        Must be exhaustive: either the full table or an exception.
        """

    @abstractmethod
    def submit_path(self, attributes: PathAttributes) -> None:
        """
        Announce or withdraw one path (direction taken from attributes.withdraw)

        Raises:
            RouteSubmissionError: If the daemon rejects the operation
        """

    def connect(self):
        """Acquire the daemon connection"""

    def disconnect(self):
        """Release the daemon connection"""

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
