"""
Maps the header spellings seen in exam seating spreadsheets to the canonical
column names used by the import pipeline.
"""

EQUIVALENT_COLUMNS = {
    "student_id": [
        "student id", "student number", "student no", "matric no", "registration number", "reg no",
    ],

    "full_name": [
        "full name", "student name", "name", "names",
    ],

    "subject_code": [
        "subject code", "course code", "exam code", "module code", "code",
    ],

    "subject_name": [
        "subject name", "subject", "course name", "course", "module", "exam name",
    ],

    "room_number": [
        "room number", "room no", "room", "venue", "hall",
    ],

    "room_capacity": [
        "room capacity", "capacity", "seats",
    ],

    "exam_date": [
        "exam date", "date",
    ],

    "start_time": [
        "start time", "exam start", "exam start time", "start", "time",
    ],

    "duration_minutes": [
        "duration minutes", "duration", "exam duration", "exam length", "length",
    ],
}
