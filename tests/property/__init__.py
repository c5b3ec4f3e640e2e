# tests/property/__init__.py
"""Property-based tests for weft.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of. Context propagation is only
useful if it is predictable, so these tests pin the merge guarantees.

Test categories:
- test_merge_properties: linear-flow identity, source-graph invariance,
  execution-flow chaining, determinism
- test_stack_properties: restoration guarantee, snapshot immutability

Usage:
    pytest tests/property/ -v
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""
