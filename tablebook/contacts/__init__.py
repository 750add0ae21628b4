"""
Модуль контактов: гости ресторана и их уникальный список.
"""

from .domain import Person, UniquePersonList

__all__ = [
    "Person",
    "UniquePersonList",
]
