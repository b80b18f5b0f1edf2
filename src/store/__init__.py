"""Persistence layer.

This package stores snapshots, intake logs, and the flow registry as
JSON documents, and exposes the SDK client built on top of them.
"""
