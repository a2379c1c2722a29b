"""Complaint document stores."""
