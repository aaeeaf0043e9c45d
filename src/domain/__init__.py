"""Domain modules for kicker match tracking."""
