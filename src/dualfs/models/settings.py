"""Setting model — the CMS's name/value settings table.

Provides ``SettingBase`` (non-table) and ``Setting`` (concrete table).
Subclass ``SettingBase`` with ``table=True`` and a custom ``__tablename__``
to read settings from a differently named table.
"""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class SettingBase(SQLModel):
    """Base fields for a setting row. Subclass with ``table=True`` for a concrete table."""

    name: str = Field(primary_key=True, max_length=255)
    value: str | None = Field(default=None)


class Setting(SettingBase, table=True):
    """Default settings table — ``settings``."""

    __tablename__ = "settings"
