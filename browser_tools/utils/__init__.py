"""Shared utilities: configuration, logging, retry and path checks."""
