"""
Shared utilities for the Redis HA bootstrap entrypoints.

This package contains the logging setup used by the Redis and Sentinel entrypoints:
- logging_config: logging setup shared by both entrypoints
"""
