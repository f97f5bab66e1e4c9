# Day serial of 1970-01-01 in spreadsheet date encoding.
SPREADSHEET_SERIAL_EPOCH = 25569

DEFAULT_ROOM_CAPACITY = 50
DEFAULT_EXAM_DURATION_MINUTES = 120
DEFAULT_START_TIME = "09:00"

# Canonical column names after header normalization.
REQUIRED_IMPORT_COLUMNS = [
    "student_id",
    "full_name",
    "subject_code",
    "room_number",
    "exam_date",
]

TEMPLATE_COLUMNS = [
    "student_id",
    "full_name",
    "subject_code",
    "subject_name",
    "room_number",
    "room_capacity",
    "exam_date",
    "start_time",
    "duration_minutes",
]
