from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class SubjectChoice:
    subject_id: int
    name: str
    code: str

    @classmethod
    def from_subject(cls, subject) -> "SubjectChoice":
        return cls(subject_id=subject.pk, name=subject.name, code=subject.code)

    @property
    def label(self) -> str:
        if self.name and self.name != self.code:
            return f"{self.name} ({self.code})"
        return self.code or self.name


def resolve_subject(
    exam_subject: Optional[SubjectChoice],
    enrollments: Sequence[SubjectChoice],
) -> Optional[SubjectChoice]:
    """
    Pick the subject to show next to a seated student.

    A single enrollment wins outright. With several, the one matching the
    exam's subject wins, else the first. With none, the exam's own subject.
    """
    if len(enrollments) == 1:
        return enrollments[0]
    if enrollments:
        if exam_subject is not None:
            for choice in enrollments:
                if choice.subject_id == exam_subject.subject_id:
                    return choice
        return enrollments[0]
    return exam_subject


def subject_label(
    exam_subject: Optional[SubjectChoice],
    enrollments: Sequence[SubjectChoice],
) -> Optional[str]:
    choice = resolve_subject(exam_subject, enrollments)
    return choice.label if choice else None
