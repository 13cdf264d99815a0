"""Domain layer for partner job imports."""
