"""Shared metadata for all clinic tables."""

from sqlalchemy import MetaData

# Single metadata so foreign keys resolve across modules
metadata = MetaData()
