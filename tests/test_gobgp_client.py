"""
Tests for the gobgp CLI client and the route table snapshot
"""

import ipaddress
import json
import unittest
from unittest.mock import Mock, patch

from geo_blackhole.bgp.gobgp_client import GoBGPClient, is_local_path
from geo_blackhole.bgp.snapshot import RouteTableSnapshot
from geo_blackhole.models import PathAttributes
from geo_blackhole.utils.config import GoBGPConfig
from geo_blackhole.utils.error_handling import (
    DaemonConnectionError,
    RouteSubmissionError,
    SnapshotError,
)
from geo_blackhole.utils.subprocess_manager import ProcessResult, ProcessState

RUN = "geo_blackhole.bgp.gobgp_client.run_with_resource_management"
WHICH = "geo_blackhole.bgp.gobgp_client.shutil.which"


def process_result(stdout="", state=ProcessState.COMPLETED, returncode=0, stderr="", error_message=None):
    return ProcessResult(
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
        state=state,
        execution_time=0.01,
        command=["gobgp"],
        error_message=error_message,
    )


def rib_json(entries):
    """entries: prefix -> neighbor-ip (None for a locally originated path)"""
    table = {}
    for prefix, neighbor in entries.items():
        path = {"nlri": {"prefix": prefix}, "age": 10, "best": True, "attrs": [], "stale": False}
        if neighbor is not None:
            path["neighbor-ip"] = neighbor
        table[prefix] = [path]
    return json.dumps(table)


class TestGoBGPClientConnect(unittest.TestCase):

    def setUp(self):
        self.config = GoBGPConfig(binary="gobgp", host="127.0.0.1", port=50051, command_timeout=7)

    @patch(RUN)
    @patch(WHICH, return_value="/usr/local/bin/gobgp")
    def test_connect_probes_daemon(self, mock_which, mock_run):
        mock_run.return_value = process_result("AS: 65000\nRouter-ID: 192.0.2.1\n")

        with GoBGPClient(self.config) as client:
            self.assertTrue(client.connected)

        command = mock_run.call_args.args[0]
        self.assertEqual(command, ["/usr/local/bin/gobgp", "-u", "127.0.0.1", "-p", "50051", "global"])
        self.assertEqual(mock_run.call_args.kwargs["timeout"], 7)
        self.assertFalse(client.connected)

    @patch(WHICH, return_value=None)
    def test_missing_binary_is_fatal(self, mock_which):
        with self.assertRaises(DaemonConnectionError):
            GoBGPClient(self.config).connect()

    @patch(RUN)
    @patch(WHICH, return_value="/usr/bin/gobgp")
    def test_unreachable_daemon_is_fatal(self, mock_which, mock_run):
        mock_run.return_value = process_result(
            state=ProcessState.FAILED, returncode=1, stderr="connection refused")
        with self.assertRaises(DaemonConnectionError) as ctx:
            GoBGPClient(self.config).connect()
        self.assertIn("connection refused", ctx.exception.technical_details)

    def test_use_before_connect(self):
        with self.assertRaises(DaemonConnectionError):
            GoBGPClient(self.config).list_active_ipv4_unicast_prefixes()


class TestGoBGPClientOperations(unittest.TestCase):

    def setUp(self):
        self.client = GoBGPClient(GoBGPConfig())
        self.client.gobgp_command = "gobgp"
        self.client.connected = True

    @patch(RUN)
    def test_list_keeps_only_local_paths(self, mock_run):
        mock_run.return_value = process_result(rib_json({
            "203.0.113.0/24": None,
            "198.51.100.0/24": "<nil>",
            "192.0.2.0/24": "10.0.0.2",
        }))

        prefixes = self.client.list_active_ipv4_unicast_prefixes()

        self.assertEqual(sorted(prefixes), ["198.51.100.0/24", "203.0.113.0/24"])
        args = mock_run.call_args.args[0]
        self.assertEqual(args[-5:], ["-j", "global", "rib", "-a", "ipv4"])

    @patch(RUN)
    def test_empty_table(self, mock_run):
        for output in ["", "null", "{}"]:
            mock_run.return_value = process_result(output)
            self.assertEqual(self.client.list_active_ipv4_unicast_prefixes(), [])

    @patch(RUN)
    def test_listing_failure_raises_snapshot_error(self, mock_run):
        mock_run.return_value = process_result(state=ProcessState.TIMEOUT, returncode=-1,
                                               error_message="Process timeout after 30s")
        with self.assertRaises(SnapshotError):
            self.client.list_active_ipv4_unicast_prefixes()

    @patch(RUN)
    def test_invalid_json_raises_snapshot_error(self, mock_run):
        mock_run.return_value = process_result("{not json")
        with self.assertRaises(SnapshotError):
            self.client.list_active_ipv4_unicast_prefixes()

    def test_build_path_args_announce(self):
        attributes = PathAttributes(
            prefix=ipaddress.IPv4Network("198.51.100.0/24"),
            origin=0,
            next_hop=ipaddress.IPv4Address("192.0.2.1"),
            communities=(0x00C80064, 0x029AFFFF),
        )
        self.assertEqual(self.client.build_path_args(attributes), [
            "global", "rib", "add", "198.51.100.0/24",
            "origin", "igp", "nexthop", "192.0.2.1",
            "community", f"{0x00C80064},{0x029AFFFF}",
            "-a", "ipv4",
        ])

    def test_build_path_args_withdraw_without_communities(self):
        attributes = PathAttributes(
            prefix=ipaddress.IPv4Network("203.0.113.0/24"),
            origin=0,
            next_hop=ipaddress.IPv4Address("192.0.2.1"),
            withdraw=True,
        )
        args = self.client.build_path_args(attributes)
        self.assertEqual(args[:4], ["global", "rib", "del", "203.0.113.0/24"])
        self.assertNotIn("community", args)

    @patch(RUN)
    def test_submit_failure_raises(self, mock_run):
        mock_run.return_value = process_result(state=ProcessState.FAILED, returncode=1, stderr="invalid nexthop")
        attributes = PathAttributes(
            prefix=ipaddress.IPv4Network("203.0.113.0/24"),
            origin=0,
            next_hop=ipaddress.IPv4Address("192.0.2.1"),
        )
        with self.assertRaises(RouteSubmissionError) as ctx:
            self.client.submit_path(attributes)
        self.assertIn("invalid nexthop", ctx.exception.message)

    @patch(RUN)
    def test_submit_success(self, mock_run):
        mock_run.return_value = process_result()
        attributes = PathAttributes(
            prefix=ipaddress.IPv4Network("203.0.113.0/24"),
            origin=0,
            next_hop=ipaddress.IPv4Address("192.0.2.1"),
        )
        self.assertIsNone(self.client.submit_path(attributes))
        mock_run.assert_called_once()

    def test_is_local_path(self):
        self.assertTrue(is_local_path({"nlri": {}}))
        self.assertTrue(is_local_path({"neighbor-ip": "<nil>"}))
        self.assertFalse(is_local_path({"neighbor-ip": "192.0.2.9"}))


class TestRouteTableSnapshot(unittest.TestCase):

    def test_malformed_entries_skipped(self):
        client = Mock()
        client.list_active_ipv4_unicast_prefixes.return_value = [
            "203.0.113.0/24", "garbage", "2001:db8::/32", "198.51.100.0/24", "203.0.113.0/24",
        ]
        snapshot = RouteTableSnapshot(client)

        with self.assertLogs("geo-blackhole.snapshot", level="WARNING"):
            prefixes = snapshot.fetch()

        self.assertEqual(prefixes, [ipaddress.IPv4Network("203.0.113.0/24"),
                                    ipaddress.IPv4Network("198.51.100.0/24")])
        self.assertEqual(snapshot.skipped, ["garbage", "2001:db8::/32"])

    def test_empty_snapshot_is_valid(self):
        client = Mock()
        client.list_active_ipv4_unicast_prefixes.return_value = []
        self.assertEqual(RouteTableSnapshot(client).fetch(), [])

    def test_listing_errors_propagate(self):
        client = Mock()
        client.list_active_ipv4_unicast_prefixes.side_effect = SnapshotError("listing failed")
        with self.assertRaises(SnapshotError):
            RouteTableSnapshot(client).fetch()


if __name__ == "__main__":
    unittest.main()
