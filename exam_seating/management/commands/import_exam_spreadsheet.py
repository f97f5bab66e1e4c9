from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from exam_seating.exceptions import ImportAborted
from exam_seating.models import AntiCheatLevel
from exam_seating.services import run_import


class Command(BaseCommand):
    help = "Import an exam seating spreadsheet (.xlsx, .xls or .csv) from disk."

    def add_arguments(self, parser):
        parser.add_argument("file", help="Path to the spreadsheet to import.")
        parser.add_argument(
            "--auto-generate",
            action="store_true",
            help="Generate seats for every imported exam session.",
        )
        parser.add_argument(
            "--anti-cheat-level",
            choices=AntiCheatLevel.values,
            default=AntiCheatLevel.BASIC,
            help="Seat spacing used with --auto-generate.",
        )

    def handle(self, *args, **options):
        path = Path(options["file"])
        if not path.is_file():
            raise CommandError(f"File not found: {path}")

        with path.open("rb") as handle:
            try:
                result = run_import(
                    handle,
                    file_name=path.name,
                    auto_generate=options["auto_generate"],
                    anti_cheat_level=options["anti_cheat_level"],
                )
            except ImportAborted as exc:
                if exc.completed_sessions:
                    self.stderr.write(
                        f"Exam sessions imported before the failure: "
                        f"{', '.join(str(pk) for pk in exc.completed_sessions)}"
                    )
                raise CommandError(exc.reason) from exc

        for warning in result.warnings:
            self.stdout.write(self.style.WARNING(warning))
        for message in result.seat_messages:
            self.stdout.write(message)
        self.stdout.write(
            self.style.SUCCESS(
                f"Imported {result.imported_sessions} exam session(s); "
                f"{result.skipped_rows} row(s) skipped."
            )
        )
