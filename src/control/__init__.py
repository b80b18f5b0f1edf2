"""Polling controllers driving pipeline stages.

This module discovers unprocessed input files, runs them through a stage,
and records every attempt in the intake log.
"""
