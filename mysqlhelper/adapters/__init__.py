"""Database client implementations."""
