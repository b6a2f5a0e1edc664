"""focus-sync - offline-first task and focus timer sync."""
