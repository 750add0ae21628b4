"""
tablebook: книга контактов ресторана с бронированием столиков.
"""

__version__ = "0.1.0"
