from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from exam_seating.models import Enrollment, ExamSession, SeatAssignment, StudentProfile
from exam_seating.services.seat_resolver import SubjectChoice, subject_label
from exam_seating.services.store import StoreGateway


def _enrollments_by_student(
    gateway: StoreGateway,
    user_ids: Iterable[int],
) -> Dict[int, List[SubjectChoice]]:
    user_ids = list(dict.fromkeys(user_ids))
    grouped: Dict[int, List[SubjectChoice]] = defaultdict(list)
    if not user_ids:
        return grouped
    for enrollment in gateway.select(Enrollment, student_id__in=user_ids, select_related=("subject",)):
        grouped[enrollment.student_id].append(SubjectChoice.from_subject(enrollment.subject))
    return grouped


def _seat_dict(seat: SeatAssignment) -> Dict[str, Any]:
    return {
        "seat_number": seat.seat_number,
        "row_number": seat.row_number,
        "column_number": seat.column_number,
    }


def get_seating_view(exam_session_id: int, *, gateway: Optional[StoreGateway] = None) -> List[Dict[str, Any]]:
    """
    Seat rows of one exam session with each student's ID, name and subject label.

    Students without a profile keep their seat with blank identity fields.
    """
    gateway = gateway or StoreGateway()
    sessions = gateway.select(ExamSession, pk=exam_session_id, select_related=("subject",))
    if not sessions:
        return []
    exam_subject = SubjectChoice.from_subject(sessions[0].subject)

    seats = gateway.select(SeatAssignment, exam_session_id=exam_session_id, order_by=("seat_number",))
    user_ids = [seat.student_id for seat in seats]
    profiles = {
        profile.user_id: profile
        for profile in gateway.select(StudentProfile, user_id__in=user_ids)
    } if user_ids else {}
    enrollments = _enrollments_by_student(gateway, user_ids)

    rows = []
    for seat in seats:
        profile = profiles.get(seat.student_id)
        rows.append(
            {
                **_seat_dict(seat),
                "student_id": profile.student_id if profile else None,
                "student_name": (profile.full_name or None) if profile else None,
                "subject_label": subject_label(exam_subject, enrollments.get(seat.student_id, [])),
            }
        )
    return rows


def get_student_schedule(user, *, gateway: Optional[StoreGateway] = None) -> List[Dict[str, Any]]:
    """
    Upcoming and past exams of a student, each with the student's own seat and
    an anonymous seat map of the room.
    """
    gateway = gateway or StoreGateway()
    subject_ids = [enrollment.subject_id for enrollment in gateway.select(Enrollment, student_id=user.pk)]
    if not subject_ids:
        return []

    sessions = gateway.select(
        ExamSession,
        subject_id__in=subject_ids,
        order_by=("exam_date", "start_time", "pk"),
        select_related=("subject", "room"),
    )
    seats = gateway.select(
        SeatAssignment,
        exam_session_id__in=[session.pk for session in sessions],
        order_by=("exam_session_id", "seat_number"),
    )
    enrollments = _enrollments_by_student(gateway, (seat.student_id for seat in seats))

    seats_by_session: Dict[int, List[SeatAssignment]] = defaultdict(list)
    for seat in seats:
        seats_by_session[seat.exam_session_id].append(seat)

    schedule = []
    for session in sessions:
        exam_subject = SubjectChoice.from_subject(session.subject)
        session_seats = seats_by_session.get(session.pk, [])
        own = next((seat for seat in session_seats if seat.student_id == user.pk), None)
        schedule.append(
            {
                "exam_session": session.pk,
                "exam_date": session.exam_date.isoformat(),
                "start_time": session.start_time.strftime("%H:%M"),
                "end_time": session.end_time.strftime("%H:%M"),
                "duration_minutes": session.duration_minutes,
                "subject": {"code": session.subject.code, "name": session.subject.name},
                "room": {"room_number": session.room.room_number, "building": session.room.building},
                "seating": _seat_dict(own) if own else None,
                "seating_map": [
                    {
                        **_seat_dict(seat),
                        "is_mine": seat.student_id == user.pk,
                        "subject_label": subject_label(exam_subject, enrollments.get(seat.student_id, [])),
                    }
                    for seat in session_seats
                ],
            }
        )

    # Second pass: look the student's own seat up per exam where the bulk read missed it.
    for entry in schedule:
        if entry["seating"] is None:
            found = gateway.select(
                SeatAssignment,
                exam_session_id=entry["exam_session"],
                student_id=user.pk,
            )
            if found:
                entry["seating"] = _seat_dict(found[0])
    return schedule
