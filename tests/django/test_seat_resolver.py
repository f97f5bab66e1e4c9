from django.test import SimpleTestCase

from exam_seating.services.seat_resolver import SubjectChoice, resolve_subject, subject_label

MATH = SubjectChoice(subject_id=1, name="Calculus I", code="MATH101")
PHYS = SubjectChoice(subject_id=2, name="Mechanics", code="PHYS101")
CHEM = SubjectChoice(subject_id=3, name="CHEM101", code="CHEM101")


class ResolveSubjectTests(SimpleTestCase):
    def test_single_enrollment_wins_even_when_it_differs(self):
        self.assertEqual(resolve_subject(MATH, [PHYS]), PHYS)

    def test_matching_enrollment_preferred_among_several(self):
        self.assertEqual(resolve_subject(MATH, [PHYS, MATH, CHEM]), MATH)

    def test_first_enrollment_when_none_match(self):
        self.assertEqual(resolve_subject(MATH, [PHYS, CHEM]), PHYS)
        self.assertEqual(resolve_subject(None, [CHEM, PHYS]), CHEM)

    def test_falls_back_to_exam_subject(self):
        self.assertEqual(resolve_subject(MATH, []), MATH)
        self.assertIsNone(resolve_subject(None, []))

    def test_labels(self):
        self.assertEqual(MATH.label, "Calculus I (MATH101)")
        self.assertEqual(CHEM.label, "CHEM101")
        self.assertEqual(subject_label(MATH, [PHYS]), "Mechanics (PHYS101)")
        self.assertIsNone(subject_label(None, []))
