"""Pydantic models for complaints and caller profiles."""
