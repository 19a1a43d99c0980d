# teachtune/services/reconciliation.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from teachtune.schemas.recurrence import Recurrence
from teachtune.services.lesson_repository import LessonRepository
from teachtune.services.schedule_generator import (
    DEFAULT_HORIZON_MONTHS,
    generate_lesson_drafts,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    student_id: str
    removed: int
    created: int
    recurrence_group_id: str | None = None


async def reconcile_schedule(
    repository: LessonRepository,
    student_id: str,
    active: bool,
    recurrence: Recurrence | None,
    now: datetime,
    tz: tzinfo = timezone.utc,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
    drop_past: bool = True,
) -> ReconciliationResult:
    """
    Bring a student's future auto-generated lessons in line with the
    student's current state.

    Rules
    -----
    1) Always delete the student's auto-generated lessons scheduled after
       `now`. Past lessons and manual bookings are kept.
    2) If the student is active and the recurrence has at least one slot,
       generate a fresh batch and insert it. With `drop_past` (updates and
       regeneration) only lessons after `now` are inserted, since the past
       generated ones survived step 1; a new student keeps the whole batch
       so attendance can be recorded for lessons already taken.
    3) Otherwise nothing is created and the student is scheduled manually.

    Lessons regenerated this way get new ids even when their time did not
    change, and attendance or notes already entered on future generated
    lessons are discarded. Only not-yet-occurred lessons are affected.

    Nothing is committed here; the caller runs this inside the same
    transaction as the student save.
    """
    removed = await repository.delete_future_auto_generated(student_id, now)

    if not active or recurrence is None or not recurrence.has_slots:
        logger.info(
            "Reconciled student %s: removed %d future lessons, manual scheduling only",
            student_id,
            removed,
        )
        return ReconciliationResult(student_id=student_id, removed=removed, created=0)

    drafts = [
        draft
        for draft in generate_lesson_drafts(
            student_id,
            recurrence,
            horizon_months=horizon_months,
            tz=tz,
            now=now,
        )
        if not drop_past or draft.scheduled_at > now
    ]
    await repository.insert_many(drafts)

    group_id = drafts[0].recurrence_group_id if drafts else None
    logger.info(
        "Reconciled student %s: removed %d future lessons, created %d (group %s)",
        student_id,
        removed,
        len(drafts),
        group_id,
    )
    return ReconciliationResult(
        student_id=student_id,
        removed=removed,
        created=len(drafts),
        recurrence_group_id=group_id,
    )
