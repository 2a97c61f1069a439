"""Service Layer — imperative shell around the pure core.

Invariants:
    - Services own DB reads/writes and outbound IO
    - Decisions (gating, permissions, aggregation) are delegated to core/
"""
