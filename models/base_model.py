#!/usr/bin/env python3
"""
Shared SQLAlchemy base for the auth API.

- Integer autoincrement primary key
- created_at / updated_at timestamps (server-side defaults)

Notes:
- We use server-side defaults (func.now()) so timestamps are set consistently by the DB.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP.
- API responses are built by the marshmallow schemas in models.schemas, never from model internals.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


class BaseModel:
    """
    Base mixin for persistent models: id plus created_at.
    Tables that are edited after insert add updated_at themselves via TimestampMixin.
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        The id is left unset so the database assigns it on insert.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)


class TimestampMixin:
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
