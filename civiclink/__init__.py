"""CivicLink complaint core."""
