#!/usr/bin/env python3
"""
GoBGP Client - drives a local gobgpd through the gobgp CLI

Supports:
- Detection of the gobgp executable
- Connectivity probe against the gobgpd gRPC API
- Listing locally originated IPv4 unicast paths (JSON output)
- Adding and deleting paths with origin, next hop and communities
"""

import json
import logging
import shutil
from typing import Any, Dict, List, Optional

from geo_blackhole.bgp.base import RoutingDaemonClient
from geo_blackhole.models import ORIGIN_EGP, ORIGIN_IGP, ORIGIN_INCOMPLETE, PathAttributes
from geo_blackhole.utils.config import GoBGPConfig
from geo_blackhole.utils.error_handling import (
    DaemonConnectionError,
    RouteSubmissionError,
    SnapshotError,
)
from geo_blackhole.utils.subprocess_manager import ProcessState, run_with_resource_management

ORIGIN_NAMES = {
    ORIGIN_IGP: "igp",
    ORIGIN_EGP: "egp",
    ORIGIN_INCOMPLETE: "incomplete",
}

# Values gobgp prints for the neighbor of a path injected through the API
LOCAL_NEIGHBOR_MARKERS = {None, "", "<nil>", "0.0.0.0", "::"}


def is_local_path(path: Dict[str, Any]) -> bool:
    """True when a gobgp JSON path was originated by this speaker, not learned from a peer"""
    return path.get("neighbor-ip") in LOCAL_NEIGHBOR_MARKERS


class GoBGPClient(RoutingDaemonClient):
    """Wrapper around the gobgp command line client"""

    DEFAULT_PATHS = [
        '/usr/local/bin/gobgp',
        '/usr/bin/gobgp',
        'gobgp'
    ]

    def __init__(self, config: Optional[GoBGPConfig] = None, logger: Optional[logging.Logger] = None):
        """
        Initialize gobgp client

        Args:
            config: gobgp section of the configuration
            logger: Optional logger instance
        """
        self.config = config or GoBGPConfig()
        self.logger = logger or logging.getLogger("geo-blackhole.gobgp")
        self.gobgp_command: Optional[str] = None
        self.connected = False

    def _detect_gobgp(self) -> str:
        """Locate the gobgp executable"""
        candidates = [self.config.binary] + [p for p in self.DEFAULT_PATHS if p != self.config.binary]
        for path in candidates:
            found = shutil.which(path)
            if found:
                self.logger.debug(f"Found gobgp: {found}")
                return found

        raise DaemonConnectionError(
            f"gobgp executable not found (tried {', '.join(candidates)})",
            guidance="Install gobgp or set gobgp.binary in the configuration",
        )

    def _base_command(self) -> List[str]:
        return [self.gobgp_command, "-u", self.config.host, "-p", str(self.config.port)]

    def _run(self, args: List[str]):
        command = self._base_command() + args
        return run_with_resource_management(command, timeout=self.config.command_timeout)

    def connect(self):
        """
        Verify gobgpd is reachable

        Raises:
            DaemonConnectionError: If the CLI is missing or the daemon does not answer
        """
        self.gobgp_command = self._detect_gobgp()
        self.logger.info(f"Connecting to gobgpd at {self.config.host}:{self.config.port}")

        try:
            result = self._run(["global"])
        except OSError as e:
            raise DaemonConnectionError(f"Cannot execute {self.gobgp_command}", technical_details=str(e))

        if result.state != ProcessState.COMPLETED:
            detail = result.error_message or result.stderr.strip()
            raise DaemonConnectionError(
                f"gobgpd not reachable at {self.config.host}:{self.config.port}",
                guidance="Check that gobgpd is running with its gRPC API enabled",
                technical_details=detail,
            )

        self.connected = True
        self.logger.info(f"Connected to gobgpd in {result.execution_time:.2f}s")

    def disconnect(self):
        if self.connected:
            self.connected = False
            self.logger.debug("Released gobgpd connection")

    def _require_connection(self):
        if not self.connected:
            raise DaemonConnectionError("gobgp client used before connect()")

    def list_active_ipv4_unicast_prefixes(self) -> List[str]:
        """
        List prefixes of locally originated paths in the global IPv4 unicast RIB

        Raises:
            SnapshotError: If the listing fails or its output cannot be parsed
        """
        self._require_connection()

        try:
            result = self._run(["-j", "global", "rib", "-a", "ipv4"])
        except OSError as e:
            raise SnapshotError("Cannot list global RIB", technical_details=str(e))

        if result.state != ProcessState.COMPLETED:
            raise SnapshotError(
                "Listing the global IPv4 RIB failed",
                technical_details=result.error_message or result.stderr.strip(),
            )

        output = result.stdout.strip()
        if not output or output == "null":
            return []

        try:
            table = json.loads(output)
        except ValueError as e:
            raise SnapshotError("gobgp returned invalid JSON for the global RIB", technical_details=str(e))

        if not isinstance(table, dict):
            raise SnapshotError(f"Unexpected global RIB format: {type(table).__name__}")

        prefixes = []
        learned = 0
        for prefix, paths in table.items():
            if any(is_local_path(p) for p in paths or [] if isinstance(p, dict)):
                prefixes.append(prefix)
            else:
                learned += 1

        if learned:
            self.logger.debug(f"Ignored {learned} prefixes learned from peers")
        return prefixes

    def build_path_args(self, attributes: PathAttributes) -> List[str]:
        """Build the 'global rib add|del' argument list for one path"""
        args = [
            "global", "rib", "del" if attributes.withdraw else "add",
            str(attributes.prefix),
            "origin", ORIGIN_NAMES[attributes.origin],
            "nexthop", str(attributes.next_hop),
        ]
        if attributes.communities:
            # gobgp accepts a plain uint32 per community
            args += ["community", ",".join(str(c) for c in attributes.communities)]
        args += ["-a", "ipv4"]
        return args

    def submit_path(self, attributes: PathAttributes) -> None:
        """
        Announce or withdraw one path

        Raises:
            RouteSubmissionError: If gobgp reports a failure or times out
        """
        self._require_connection()
        action = "withdraw" if attributes.withdraw else "announce"

        try:
            result = self._run(self.build_path_args(attributes))
        except OSError as e:
            raise RouteSubmissionError(f"Cannot {action} {attributes.prefix}", technical_details=str(e))

        if result.state == ProcessState.TIMEOUT:
            raise RouteSubmissionError(f"Timed out trying to {action} {attributes.prefix}",
                                       technical_details=result.error_message)
        if result.state != ProcessState.COMPLETED:
            raise RouteSubmissionError(
                f"gobgp error (code {result.returncode}) trying to {action} {attributes.prefix}: "
                f"{result.stderr.strip()}"
            )

        self.logger.debug(f"{action} {attributes.prefix} in {result.execution_time:.2f}s")
