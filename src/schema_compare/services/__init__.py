"""Comparison orchestration.

Usage:
    from schema_compare.services import CompareService
"""

from schema_compare.services.compare import CompareService

__all__ = ["CompareService"]
