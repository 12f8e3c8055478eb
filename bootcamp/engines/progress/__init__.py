"""
Progress Engine - completion percentages from granular lesson completions.

Per-module percent = round(100 * done / total), halves up.
Overall percent is computed over every topic in the curriculum; empty
modules report 0 and do not count towards the total.
"""

from bootcamp.engines.progress.curriculum import CurriculumModel, CurriculumModule
from bootcamp.engines.progress.progress_tracker import (
    ProgressReport,
    ProgressTracker,
    compute_progress,
    percent,
)

__all__ = [
    "CurriculumModel",
    "CurriculumModule",
    "ProgressReport",
    "ProgressTracker",
    "compute_progress",
    "percent",
]
