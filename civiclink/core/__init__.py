"""Core configuration, logging and error taxonomy."""
