"""NAV-based unit accounting and trade position tracking service."""
