"""SQLModel database models for dualfs."""

from dualfs.models.settings import Setting, SettingBase

__all__ = [
    "Setting",
    "SettingBase",
]
