"""Core Layer: property discovery, qualifiers, caches and codecs.

Invariants:
    - No module in core/ imports from services/, infrastructure/, or config
    - Nothing in core/ performs IO; the only shared mutable state lives in RegistryCache

Design Decisions:
    - Functional core separated from the registry that wires it (ADR: impureim sandwich)
"""
