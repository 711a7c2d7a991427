"""
Service layer for the Fortress backend.

This package contains the automation rule engine, its action executor and
the inventory, reconciliation and activity-log services that feed it.
"""

from .rule_engine import ChangeEvent, evaluate_rules, process_inventory_change

__all__ = ["ChangeEvent", "evaluate_rules", "process_inventory_change"]
