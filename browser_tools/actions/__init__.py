"""Page-level actions."""
