"""Storage bootstrap (Firebase)."""
