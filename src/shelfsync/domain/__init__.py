"""Domain layer: records, reconciliation and lookup services."""
