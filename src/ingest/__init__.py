"""Source readers.

This package turns delimited files, JSONL files, and persisted
snapshots into record sequences for pipeline stages.
"""
