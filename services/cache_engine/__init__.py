"""Materialized transaction analytics cache refresh service."""
