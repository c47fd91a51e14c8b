"""Provider adapters and the reconciliation services built on them."""
