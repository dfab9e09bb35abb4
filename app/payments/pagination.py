"""
Pagination classes for the payments admin API.

Both lists are append-heavy (gateways keep delivering while an operator
pages through), so cursor pagination keeps pages stable under inserts.
"""

from rest_framework.pagination import CursorPagination


class TransactionPagination(CursorPagination):
    """
    Cursor pagination for transaction lists, newest first.

    Default: 50 per page
    Maximum: 200 per page
    """

    page_size = 50
    max_page_size = 200
    page_size_query_param = "page_size"
    ordering = ("-created_at", "-id")


class AuditLogPagination(CursorPagination):
    """
    Cursor pagination for audit log lists, newest first.

    Default: 50 per page
    Maximum: 200 per page
    """

    page_size = 50
    max_page_size = 200
    page_size_query_param = "page_size"
    ordering = ("-created_at",)
