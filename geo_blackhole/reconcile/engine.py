"""
Reconciliation Engine

Diffs the desired block set against the active route table and converges the
table with the minimum number of announce/withdraw operations. Prefixes that
are both desired and active are never touched, so repeated runs against an
unchanged database are no-ops.
"""

import logging
import time
from typing import Callable, Iterable, List, Optional, Set

from geo_blackhole.bgp.attributes import AttributeEncoder
from geo_blackhole.models import (
    Action,
    OperationResult,
    PathAttributes,
    ReconciliationPlan,
    ReconciliationReport,
    parse_prefix,
)
from geo_blackhole.utils.logging import log_batch_summary


def prefix_sort_key(prefix: str):
    network = parse_prefix(prefix)
    return int(network.network_address), network.prefixlen


class ReconciliationEngine:
    """Plan and apply the delta between desired and active prefix sets"""

    def __init__(self, encoder: AttributeEncoder, logger: Optional[logging.Logger] = None):
        self.encoder = encoder
        self.logger = logger or logging.getLogger("geo-blackhole.reconcile")

    def _keys(self, prefixes: Iterable, label: str) -> Set[str]:
        keys = set()
        for prefix in prefixes:
            try:
                keys.add(str(parse_prefix(prefix)))
            except ValueError as e:
                self.logger.warning(f"Ignoring malformed {label} prefix {prefix!r}: {e}")
        return keys

    def reconcile(self, desired: Iterable, active: Iterable) -> ReconciliationPlan:
        """
        Compute the withdraw/announce plan

        Args:
            desired: Prefixes that should be announced
            active: Prefixes currently announced

        Returns:
            ReconciliationPlan with active - desired to withdraw and
            desired - active to announce
        """
        desired_keys = self._keys(desired, "desired")
        active_keys = self._keys(active, "active")

        plan = ReconciliationPlan(
            to_withdraw=frozenset(active_keys - desired_keys),
            to_announce=frozenset(desired_keys - active_keys),
            unchanged=frozenset(desired_keys & active_keys),
        )
        self.logger.info(f"Reconciliation plan: {plan.to_summary()}")
        return plan

    def execute(self, plan: ReconciliationPlan,
                submit: Callable[[PathAttributes], None],
                dry_run: bool = False) -> ReconciliationReport:
        """
        Apply a plan one prefix at a time

        Withdrawals run before announcements. A failure to encode or submit
        one prefix is recorded and the batch continues.

        Args:
            plan: Plan from reconcile()
            submit: Callable performing one announce/withdraw
            dry_run: Encode every operation but do not submit

        Returns:
            ReconciliationReport with one OperationResult per plan item
        """
        report = ReconciliationReport(plan=plan, dry_run=dry_run)

        batches = [
            (Action.WITHDRAW, sorted(plan.to_withdraw, key=prefix_sort_key)),
            (Action.ANNOUNCE, sorted(plan.to_announce, key=prefix_sort_key)),
        ]

        for action, prefixes in batches:
            if not prefixes:
                continue
            start_time = time.time()
            results = [self._apply_one(prefix, action, submit, dry_run) for prefix in prefixes]
            report.results.extend(results)
            log_batch_summary(self.logger, action.value, len(results),
                              sum(1 for r in results if r.success), time.time() - start_time)

        return report

    def _apply_one(self, prefix: str, action: Action,
                   submit: Callable[[PathAttributes], None], dry_run: bool) -> OperationResult:
        withdraw = action is Action.WITHDRAW
        try:
            attributes = self.encoder.encode(prefix, withdraw=withdraw)
            if dry_run:
                self.logger.info(f"[dry-run] would {action.value} {prefix}")
                return OperationResult(prefix, action, True)
            submit(attributes)
        except Exception as e:
            self.logger.error(f"Failed to {action.value} {prefix}: {e}")
            return OperationResult(prefix, action, False, error_message=str(e))

        self.logger.info(f"{'Withdrew' if withdraw else 'Announced'} {prefix}")
        return OperationResult(prefix, action, True)


def apply_plan_to_set(active: Iterable[str], plan: ReconciliationPlan) -> List[str]:
    """Return the prefix set the table holds once the plan has fully succeeded"""
    result = (set(active) | plan.to_announce) - plan.to_withdraw
    return sorted(result, key=prefix_sort_key)
