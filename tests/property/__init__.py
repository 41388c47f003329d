"""
LECTIO - Property-Based Testing Suite

Property-based testing using Hypothesis to discover edge cases and invariants
in source parsing, book resolution, gap detection and commits.
"""
