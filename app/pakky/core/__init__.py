"""Core engine for pakky: queue, reconciliation, orchestration and persistence."""
