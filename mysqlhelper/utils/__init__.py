"""Utility functions and classes for mysqlhelper."""

from mysqlhelper.utils import logging, serializers

__all__ = ("logging", "serializers")
