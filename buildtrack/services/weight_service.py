# Rev 0.1.0
"""Leaf weight normalization: scale a project's leaf weights to sum to exactly 100."""
from __future__ import annotations

from dataclasses import dataclass

from ..models.errors import ValidationError
from ..repositories.db import Database
from ..repositories.sqlite_task_repository import SQLiteTaskRepository
from ..utils.logging_setup import get_logger

TARGET = 100.0


@dataclass(frozen=True)
class NormalizationReport:
    old_sum: float
    new_sum: float
    updated_count: int


class WeightService:
    def __init__(self, db: Database, tasks: SQLiteTaskRepository) -> None:
        self._log = get_logger("WeightService")
        self._db = db
        self._tasks = tasks

    def normalize_project_weights(self, project_id: int) -> NormalizationReport:
        with self._db.transaction():
            leaves = self._tasks.list_leaf_tasks(project_id)
            if not leaves:
                raise ValidationError(f"project {project_id} has no leaf tasks")
            old_sum = sum(t.weight for t in leaves)
            if old_sum <= 0:
                raise ValidationError(f"cannot normalize project {project_id}: weight sum is 0")

            factor = TARGET / old_sum
            new_weights = {t.id: round(t.weight * factor, 2) for t in leaves}

            # rounding residual goes to the heaviest leaf
            residual = round(TARGET - sum(new_weights.values()), 2)
            if residual:
                heaviest = max(leaves, key=lambda t: (new_weights[t.id], -t.id))
                new_weights[heaviest.id] = round(new_weights[heaviest.id] + residual, 2)
                self._log.info("rounding residual %.2f applied to task %s", residual, heaviest.id)

            old = {t.id: t.weight for t in leaves}
            changed = {tid: w for tid, w in new_weights.items() if w != old[tid]}
            self._tasks.update_weights(changed)

        new_sum = round(sum(new_weights.values()), 2)
        self._log.info(
            "normalized project %s weights: %.4f -> %.2f (%d updated)", project_id, old_sum, new_sum, len(changed)
        )
        return NormalizationReport(old_sum=old_sum, new_sum=new_sum, updated_count=len(changed))
