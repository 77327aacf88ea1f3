#!/usr/bin/env python3
"""
Pipeline Orchestration - geo-blackhole reconciliation pass

Runs one complete pass:
1. Build the desired block set from the country database and allow-list
2. Fetch the active route table from gobgpd
3. Reconcile desired against active
4. Withdraw and announce the delta, one prefix at a time

Every pass re-derives the plan from scratch; nothing is persisted.
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..bgp.attributes import AttributeEncoder
from ..bgp.base import RoutingDaemonClient
from ..bgp.gobgp_client import GoBGPClient
from ..bgp.snapshot import RouteTableSnapshot
from ..geo.maxmind import GeoCountryReader
from ..models import BuildStatistics, ReconciliationPlan, ReconciliationReport
from ..prefixes.builder import PrefixSetBuilder
from ..reconcile.engine import ReconciliationEngine
from ..utils.config import BlackholeConfig
from ..utils.logging import LoggingTimer


@dataclass
class PipelineResult:
    """Complete pass results"""
    desired: List[ipaddress.IPv4Network]
    active: List[ipaddress.IPv4Network] = field(default_factory=list)
    statistics: BuildStatistics = field(default_factory=BuildStatistics)
    report: Optional[ReconciliationReport] = None

    @property
    def plan(self) -> Optional[ReconciliationPlan]:
        return self.report.plan if self.report else None

    @property
    def success(self) -> bool:
        return self.report is None or self.report.success


class BlackholeWorkflow:
    """Wire the geo reader, builder, snapshot, engine and gobgp client together"""

    def __init__(self, config: BlackholeConfig,
                 geo_reader_factory: Callable[[str], GeoCountryReader] = GeoCountryReader,
                 client_factory: Callable[..., RoutingDaemonClient] = GoBGPClient,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.geo_reader_factory = geo_reader_factory
        self.client_factory = client_factory
        self.logger = logger or logging.getLogger("geo-blackhole.pipeline")

        # Next hop and communities are validated before any resource is opened
        self.encoder = AttributeEncoder(config.blackhole.next_hop, config.blackhole.communities)
        self.builder = PrefixSetBuilder()
        self.engine = ReconciliationEngine(self.encoder)

    def build_desired(self) -> List[ipaddress.IPv4Network]:
        """Compute the desired block set; the geo database is closed on return"""
        countries = self.config.blackhole.countries
        with LoggingTimer(self.logger, f"desired set build for {', '.join(countries) or 'no countries'}"):
            with self.geo_reader_factory(self.config.geoip.path) as reader:
                country_lists = reader.country_prefixes(countries)
            return self.builder.build(country_lists, self.config.blackhole.allow_list)

    def run(self, dry_run: bool = False) -> PipelineResult:
        """
        Execute one reconciliation pass

        Raises:
            GeoDatabaseError, DaemonConnectionError, SnapshotError: fatal setup failures
        """
        desired = self.build_desired()
        result = PipelineResult(desired=desired, statistics=self.builder.statistics)

        with self.client_factory(self.config.gobgp) as client:
            with LoggingTimer(self.logger, "active route table fetch"):
                result.active = RouteTableSnapshot(client).fetch()

            plan = self.engine.reconcile(desired, result.active)
            self.logger.debug(
                f"Table will hold {len(plan.unchanged) + len(plan.to_announce)} prefixes after convergence"
            )

            if plan.is_empty:
                self.logger.info("Route table already matches the desired set")

            with LoggingTimer(self.logger, "plan execution"):
                result.report = self.engine.execute(plan, client.submit_path, dry_run=dry_run)

        return result
