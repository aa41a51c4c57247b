"""Settings and logging helpers."""
