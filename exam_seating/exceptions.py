from typing import List, Optional, Sequence


class ImportAborted(Exception):
    """
    Terminal failure of a spreadsheet import.

    ``completed_sessions`` lists the ids of exam sessions that were fully
    reconciled before the failure; nothing they wrote is rolled back.
    """

    def __init__(
        self,
        reason: str,
        *,
        completed_sessions: Optional[Sequence[int]] = None,
        warnings: Optional[Sequence[str]] = None,
        skipped_rows: int = 0,
    ):
        super().__init__(reason)
        self.reason = reason
        self.completed_sessions: List[int] = list(completed_sessions or [])
        self.warnings: List[str] = list(warnings or [])
        self.skipped_rows = skipped_rows

    @property
    def last_session(self) -> Optional[int]:
        return self.completed_sessions[-1] if self.completed_sessions else None


class ImportValidationError(ImportAborted):
    """The spreadsheet cannot be imported at all (missing headers, empty, too large)."""


class UnresolvedIdentity(ImportAborted):
    def __init__(self, missing_ids: Sequence[str], **kwargs):
        self.missing_ids = list(missing_ids)
        reason = (
            "Import aborted: the following student IDs do not have corresponding user accounts: "
            f"{', '.join(self.missing_ids)}. Create the accounts first, then re-run the import."
        )
        super().__init__(reason, **kwargs)


class StoreError(Exception):
    """A database operation issued through the store gateway failed."""


class ConstraintMissingError(StoreError):
    """The table has no unique constraint matching the requested conflict target."""


class RowSkipped(ValueError):
    """One spreadsheet row cannot be normalized; the import carries on without it."""


class SeatGenerationError(Exception):
    pass
