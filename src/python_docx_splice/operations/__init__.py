"""
Operations package for Document manipulation.

This package contains classes that handle specific operations on Word documents,
extracted from the main Document class to improve separation of concerns.
"""

from .charts import ChartOperations
from .structure import StructureOperations

__all__ = [
    "ChartOperations",
    "StructureOperations",
]
