"""High-score persistence."""
