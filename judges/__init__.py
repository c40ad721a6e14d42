"""Judge pool handling and room allocation."""

from .allocation import (
    AllocationReport,
    JudgeAllocator,
    conflict_institutions,
    has_conflict,
)

__all__ = [
    "AllocationReport",
    "JudgeAllocator",
    "conflict_institutions",
    "has_conflict",
]
