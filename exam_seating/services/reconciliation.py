import logging
from dataclasses import dataclass, field
from datetime import time
from typing import Any, Dict, List, Optional, Sequence

from exam_seating.constants import (
    DEFAULT_EXAM_DURATION_MINUTES,
    DEFAULT_ROOM_CAPACITY,
)
from exam_seating.exceptions import (
    ConstraintMissingError,
    ImportAborted,
    SeatGenerationError,
    StoreError,
    UnresolvedIdentity,
)
from exam_seating.models import (
    AntiCheatLevel,
    Enrollment,
    ExamSession,
    Room,
    StudentProfile,
    Subject,
)
from exam_seating.services.row_normalizer import NormalizedRow
from exam_seating.services.seat_generator import get_seat_generator
from exam_seating.services.store import StoreGateway

logger = logging.getLogger(__name__)

EXAM_SESSION_KEY_FIELDS = ["subject", "exam_date", "start_time", "room"]

# How an exam session was obtained.
PATH_UPSERT = "upsert"
PATH_LEGACY_EXISTING = "legacy_existing"
PATH_LEGACY_INSERT = "legacy_insert"

LEGACY_EXISTING_WARNING = (
    "Exam upsert fallback: found existing exam without constraint; using existing record."
)
LEGACY_INSERT_WARNING = (
    "Exam upsert fallback: inserted a new exam because the database is missing the expected "
    "unique constraint. Run the migrations to add the constraint."
)


@dataclass(frozen=True)
class ExamSessionResolution:
    exam_session: ExamSession
    path: str = PATH_UPSERT

    @property
    def legacy(self) -> bool:
        return self.path != PATH_UPSERT


@dataclass(frozen=True)
class SessionOutcome:
    key: str
    exam_session: ExamSession
    path: str
    enrollments: int
    warnings: Sequence[str] = field(default_factory=tuple)
    seat_message: Optional[str] = None


def compute_end_time(start_time: str, duration_minutes: Optional[int] = None) -> str:
    """``start_time`` plus the duration on a 24-hour clock, as ``HH:MM:00``."""
    hours, minutes = (int(part or 0) for part in str(start_time).split(":")[:2])
    duration = duration_minutes or DEFAULT_EXAM_DURATION_MINUTES
    total = (hours * 60 + minutes + duration) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}:00"


# ---------- SUBJECT / ROOM ----------

def upsert_subject(gateway: StoreGateway, first: NormalizedRow) -> Subject:
    record = {"code": first.subject_code, "name": first.subject_name or first.subject_code}
    # Without a name in the sheet an existing subject keeps the one it has,
    # rather than being reset to its code.
    update_fields = ["name"] if first.subject_name else ["code"]
    return gateway.upsert(
        Subject, [record], unique_fields=["code"], update_fields=update_fields
    )[0]


def upsert_room(gateway: StoreGateway, first: NormalizedRow) -> Room:
    record = {
        "room_number": first.room_number,
        "capacity": first.room_capacity or DEFAULT_ROOM_CAPACITY,
    }
    # A blank capacity leaves an existing room as it is instead of resetting it
    # to the default.
    update_fields = ["capacity"] if first.room_capacity else ["room_number"]
    return gateway.upsert(
        Room, [record], unique_fields=["room_number"], update_fields=update_fields
    )[0]


# ---------- EXAM SESSION ----------

def exam_session_payload(first: NormalizedRow, subject: Subject, room: Room) -> Dict[str, Any]:
    duration = first.duration_minutes or DEFAULT_EXAM_DURATION_MINUTES
    return {
        "subject_id": subject.pk,
        "room_id": room.pk,
        "exam_date": first.exam_date,
        "start_time": time.fromisoformat(first.start_time),
        "end_time": time.fromisoformat(compute_end_time(first.start_time, duration)),
        "duration_minutes": duration,
    }


def try_upsert_exam_session(gateway: StoreGateway, payload: Dict[str, Any]) -> ExamSession:
    """First path: rely on the (subject, date, start, room) unique constraint."""
    return gateway.upsert(
        ExamSession,
        [payload],
        unique_fields=EXAM_SESSION_KEY_FIELDS,
        update_fields=["end_time", "duration_minutes"],
    )[0]


def select_or_insert_exam_session(
    gateway: StoreGateway,
    payload: Dict[str, Any],
) -> ExamSessionResolution:
    """Second path, for schemas without the constraint: reuse a match or insert."""
    existing = gateway.select(
        ExamSession,
        subject_id=payload["subject_id"],
        exam_date=payload["exam_date"],
        start_time=payload["start_time"],
        room_id=payload["room_id"],
    )
    if existing:
        if len(existing) > 1:
            logger.warning(
                "Found %d exam sessions for one slot; reusing exam_session=%s",
                len(existing),
                existing[0].pk,
            )
        return ExamSessionResolution(existing[0], PATH_LEGACY_EXISTING)
    inserted = gateway.insert(ExamSession, [payload])
    return ExamSessionResolution(inserted[0], PATH_LEGACY_INSERT)


def resolve_exam_session(gateway: StoreGateway, payload: Dict[str, Any]) -> ExamSessionResolution:
    try:
        exam_session = try_upsert_exam_session(gateway, payload)
    except ConstraintMissingError as exc:
        logger.warning("Exam session upsert has no unique constraint to use, falling back: %s", exc)
        return select_or_insert_exam_session(gateway, payload)
    return ExamSessionResolution(exam_session, PATH_UPSERT)


# ---------- STUDENTS / ENROLLMENTS ----------

def _display_names(rows: Sequence[NormalizedRow]) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for row in rows:
        if row.full_name and row.student_id not in names:
            names[row.student_id] = row.full_name
    return names


def sync_student_profiles(gateway: StoreGateway, rows: Sequence[NormalizedRow]) -> int:
    """
    Refresh ``full_name`` on the profiles of students in the batch.

    Profiles are keyed by account, so only students that already have one are
    written; unknown student IDs are left for the identity check to report.
    """
    names = _display_names(rows)
    student_ids = list(dict.fromkeys(row.student_id for row in rows))
    existing = gateway.select(StudentProfile, student_id__in=student_ids)
    records = [
        {"user_id": profile.user_id, "student_id": profile.student_id, "full_name": names[profile.student_id]}
        for profile in existing
        if profile.student_id in names
    ]
    gateway.upsert(
        StudentProfile,
        records,
        unique_fields=["student_id"],
        update_fields=["full_name"],
    )
    return len(records)


def resolve_canonical_ids(gateway: StoreGateway, student_ids: Sequence[str]) -> Dict[str, int]:
    student_ids = list(dict.fromkeys(student_ids))
    profiles = gateway.select(StudentProfile, student_id__in=student_ids)
    canonical = {profile.student_id: profile.user_id for profile in profiles}
    missing = [student_id for student_id in student_ids if student_id not in canonical]
    if missing:
        raise UnresolvedIdentity(missing)
    return canonical


def upsert_enrollments(
    gateway: StoreGateway,
    canonical_ids: Dict[str, int],
    subject: Subject,
) -> List[Enrollment]:
    records = [
        {"student_id": user_id, "subject_id": subject.pk}
        for user_id in dict.fromkeys(canonical_ids.values())
    ]
    return gateway.upsert(Enrollment, records, unique_fields=["student", "subject"])


# ---------- ORCHESTRATION ----------

def reconcile_session(
    rows: Sequence[NormalizedRow],
    *,
    gateway: StoreGateway,
    key: str = "",
    auto_generate: bool = False,
    anti_cheat_level: str = AntiCheatLevel.BASIC,
    seat_generator=None,
) -> SessionOutcome:
    """
    Write one exam-session batch: subject, room, exam session, student display
    names, enrollments and, when asked, seats.

    Steps run in order and stop at the first failure; whatever earlier steps
    wrote stays in place. Store and seat-generation failures are raised as
    ImportAborted, a student without an account as UnresolvedIdentity.
    """
    if not rows:
        raise ValueError("Cannot reconcile an empty session batch.")
    first = rows[0]
    warnings: List[str] = []

    try:
        subject = upsert_subject(gateway, first)
        room = upsert_room(gateway, first)
        resolution = resolve_exam_session(gateway, exam_session_payload(first, subject, room))
        if resolution.path == PATH_LEGACY_EXISTING:
            warnings.append(LEGACY_EXISTING_WARNING)
        elif resolution.path == PATH_LEGACY_INSERT:
            warnings.append(LEGACY_INSERT_WARNING)
        exam_session = resolution.exam_session

        sync_student_profiles(gateway, rows)
        canonical_ids = resolve_canonical_ids(gateway, [row.student_id for row in rows])
        enrollments = upsert_enrollments(gateway, canonical_ids, subject)
    except StoreError as exc:
        raise ImportAborted(f"Failed to import exam session {key or first.subject_code}: {exc}") from exc

    logger.info(
        "Reconciled exam_session=%s key=%s path=%s enrollments=%d",
        exam_session.pk,
        key,
        resolution.path,
        len(enrollments),
    )

    seat_message = None
    if auto_generate:
        seat_generator = seat_generator or get_seat_generator()
        try:
            generated = seat_generator.generate(exam_session.pk, anti_cheat_level)
        except SeatGenerationError as exc:
            raise ImportAborted(
                f"Seat generation failed for exam session {exam_session.pk}: {exc}"
            ) from exc
        seat_message = (generated or {}).get("message")

    return SessionOutcome(
        key=key,
        exam_session=exam_session,
        path=resolution.path,
        enrollments=len(enrollments),
        warnings=tuple(warnings),
        seat_message=seat_message,
    )
