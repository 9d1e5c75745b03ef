"""Index reconciliation: store, scanner, access, enrichment, reconciler."""
