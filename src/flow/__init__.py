"""Record processing engine and pipeline stages.

This module maps, validates, and commits record windows and wraps the
result of each run into an immutable snapshot.
"""
