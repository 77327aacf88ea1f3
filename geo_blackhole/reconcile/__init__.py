from .engine import ReconciliationEngine, apply_plan_to_set

__all__ = ["ReconciliationEngine", "apply_plan_to_set"]
