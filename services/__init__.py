"""Oracle trader services."""
