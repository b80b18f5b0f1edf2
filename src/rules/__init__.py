"""Record validation rules.

This module defines named specifications evaluated against single
records and against whole batches before commit.
"""
