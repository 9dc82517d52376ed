"""Core review logic: scheduling, sanitizing, grouping and narration."""
