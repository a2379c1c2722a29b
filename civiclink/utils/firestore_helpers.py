"""
Firestore query helpers using the keyword `filter=` API
(positional `where` arguments emit a deprecation warning).
"""

from typing import Iterable

from google.cloud.firestore_v1.base_query import FieldFilter

from civiclink.storage.base import QueryFilter


def where_filter(query, field_path: str, op_string: str, value):
    """
    Apply one `where` clause to a Firestore query.

    Usage:
        query = where_filter(collection, "location.wardCode", "==", "WARD_3")
        query = where_filter(query, "status", "in", ["submitted", "reopened"])
    """
    return query.where(filter=FieldFilter(field_path, op_string, value))


def apply_filters(query, filters: Iterable[QueryFilter]):
    """Apply QueryFilter clauses conjunctively."""
    for clause in filters:
        query = where_filter(query, clause.field, clause.op, clause.value)
    return query
