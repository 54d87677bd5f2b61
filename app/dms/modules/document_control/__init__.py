"""
Document Control module: registry, lifecycle engine and read-only projections.
"""
