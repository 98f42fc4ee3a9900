"""Declarative base and portable column types."""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase

# BIGINT on PostgreSQL; plain INTEGER on SQLite so rowid autoincrement works
BigIntId = BigInteger().with_variant(Integer(), "sqlite")

# Token amounts: exact NUMERIC in storage, floats in Python
Amount = Numeric(38, 8, asdecimal=False)


class Base(DeclarativeBase):
    pass
