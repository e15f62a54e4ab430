"""Extraction jobs and the selector machinery they share."""
