"""Geo, i18n and Firestore helpers."""
