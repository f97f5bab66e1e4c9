import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from django.conf import settings

from exam_seating.exceptions import ImportAborted, ImportValidationError
from exam_seating.models import AntiCheatLevel, ImportLog, ImportStatus
from exam_seating.services.reconciliation import SessionOutcome, reconcile_session
from exam_seating.services.row_normalizer import SkippedRow, normalize_rows, validate_headers
from exam_seating.services.seat_generator import get_seat_generator
from exam_seating.services.session_grouper import group_rows
from exam_seating.services.store import StoreGateway
from exam_seating.utils.spreadsheet_reader import read_spreadsheet_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    """Running tally of an import, replaced (never mutated) after each exam session."""

    sessions: Tuple[int, ...] = ()
    skipped: Tuple[SkippedRow, ...] = ()
    warnings: Tuple[str, ...] = ()
    seat_messages: Tuple[str, ...] = ()

    @property
    def imported_sessions(self) -> int:
        return len(self.sessions)

    @property
    def skipped_rows(self) -> int:
        return len(self.skipped)

    @property
    def last_session(self) -> Optional[int]:
        return self.sessions[-1] if self.sessions else None

    def record(self, outcome: SessionOutcome) -> "ImportResult":
        return replace(
            self,
            sessions=self.sessions + (outcome.exam_session.pk,),
            warnings=self.warnings + tuple(outcome.warnings),
            seat_messages=self.seat_messages + ((outcome.seat_message,) if outcome.seat_message else ()),
        )

    def warn(self, message: str) -> "ImportResult":
        return replace(self, warnings=self.warnings + (message,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported_sessions": self.imported_sessions,
            "skipped_rows": self.skipped_rows,
            "last_session": self.last_session,
            "sessions": list(self.sessions),
            "skipped": [{"row": row.row_number, "reason": row.reason} for row in self.skipped],
            "warnings": list(self.warnings),
            "seat_messages": list(self.seat_messages),
        }


def import_spreadsheet(
    raw_rows: Iterable[Dict[str, Any]],
    *,
    auto_generate: bool = False,
    anti_cheat_level: str = AntiCheatLevel.BASIC,
    gateway: Optional[StoreGateway] = None,
    seat_generator=None,
) -> ImportResult:
    """
    Import decoded spreadsheet rows, one exam session at a time.

    Rows that cannot be normalized are skipped and counted. Exam sessions are
    reconciled in first-seen order; the first failure stops the import with
    ImportAborted, and sessions reconciled before it stay written.
    """
    raw_rows = list(raw_rows)
    validate_headers(raw_rows)

    max_rows = settings.EXAM_IMPORT_MAX_UPLOAD_ROWS
    if max_rows and len(raw_rows) > max_rows:
        raise ImportValidationError(
            f"Spreadsheet has {len(raw_rows)} rows; at most {max_rows} can be imported at once."
        )
    if anti_cheat_level not in AntiCheatLevel.values:
        raise ImportValidationError(f"Unknown anti-cheat level: {anti_cheat_level}")

    normalized, skipped = normalize_rows(raw_rows)
    result = ImportResult(skipped=tuple(skipped))
    if skipped:
        logger.warning("Skipped %d spreadsheet rows: %s", len(skipped), skipped[:5])
        result = result.warn(
            f"{len(skipped)} row(s) were skipped because of an invalid exam date or a missing field."
        )

    gateway = gateway or StoreGateway()
    if auto_generate and seat_generator is None:
        seat_generator = get_seat_generator()

    for key, rows in group_rows(normalized).items():
        try:
            outcome = reconcile_session(
                rows,
                gateway=gateway,
                key=key,
                auto_generate=auto_generate,
                anti_cheat_level=anti_cheat_level,
                seat_generator=seat_generator,
            )
        except ImportAborted as exc:
            exc.completed_sessions = list(result.sessions)
            exc.warnings = list(result.warnings) + exc.warnings
            exc.skipped_rows = result.skipped_rows
            logger.error(
                "Import aborted at %s after %d exam sessions: %s",
                key,
                result.imported_sessions,
                exc.reason,
            )
            raise
        result = result.record(outcome)

    logger.info(
        "Imported %d exam sessions (%d rows skipped, %d warnings)",
        result.imported_sessions,
        result.skipped_rows,
        len(result.warnings),
    )
    return result


def run_import(
    file,
    *,
    file_name: Optional[str] = None,
    uploaded_by: Optional[Any] = None,
    auto_generate: bool = False,
    anti_cheat_level: str = AntiCheatLevel.BASIC,
    seat_generator=None,
) -> ImportResult:
    """
    Decode an uploaded file, import it and record the attempt in ImportLog.

    Uploads rejected before any write (bad headers, too many rows) are not
    logged; every other outcome is.
    """
    file_name = file_name or getattr(file, "name", None) or "uploaded_file"
    user = uploaded_by if getattr(uploaded_by, "is_authenticated", False) else None
    raw_rows = read_spreadsheet_rows(file)

    try:
        result = import_spreadsheet(
            raw_rows,
            auto_generate=auto_generate,
            anti_cheat_level=anti_cheat_level,
            seat_generator=seat_generator,
        )
    except ImportValidationError:
        raise
    except ImportAborted as exc:
        ImportLog.objects.create(
            file_name=file_name,
            uploaded_by=user,
            status=ImportStatus.ABORTED,
            sessions_imported=len(exc.completed_sessions),
            rows_skipped=exc.skipped_rows,
            message=exc.reason,
            last_session_id=exc.last_session,
        )
        raise

    ImportLog.objects.create(
        file_name=file_name,
        uploaded_by=user,
        status=ImportStatus.SUCCESS,
        sessions_imported=result.imported_sessions,
        rows_skipped=result.skipped_rows,
        message="\n".join(result.warnings),
        last_session_id=result.last_session,
    )
    return result
