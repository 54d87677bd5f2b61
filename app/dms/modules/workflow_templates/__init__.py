"""
Workflow Templates module: reusable, immutable ordered stage sequences.
"""
