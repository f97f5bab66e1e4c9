from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from exam_seating.exceptions import ConstraintMissingError, StoreError
from exam_seating.models import Enrollment, Room, Subject
from exam_seating.services.store import StoreGateway, is_constraint_missing


class ConstraintMissingDetectionTests(SimpleTestCase):
    def test_postgres_and_sqlite_messages(self):
        self.assertTrue(
            is_constraint_missing(
                Exception("there is no unique or exclusion constraint matching the ON CONFLICT specification")
            )
        )
        self.assertTrue(
            is_constraint_missing(
                Exception("ON CONFLICT clause does not match any PRIMARY KEY or UNIQUE constraint")
            )
        )
        self.assertFalse(is_constraint_missing(Exception("duplicate key value violates unique constraint")))


class StoreGatewayTests(TestCase):
    def setUp(self):
        self.gateway = StoreGateway()

    def test_upsert_inserts_then_updates_in_place(self):
        first = self.gateway.upsert(
            Subject, [{"code": "MATH101", "name": "Calc"}], unique_fields=["code"]
        )
        second = self.gateway.upsert(
            Subject, [{"code": "MATH101", "name": "Calculus I"}], unique_fields=["code"]
        )

        self.assertEqual(len(first), 1)
        self.assertEqual(first[0].pk, second[0].pk)
        self.assertEqual(Subject.objects.get().name, "Calculus I")

    def test_upsert_respects_explicit_update_fields(self):
        self.gateway.upsert(Room, [{"room_number": "R1", "capacity": 30}], unique_fields=["room_number"])
        self.gateway.upsert(
            Room,
            [{"room_number": "R1", "capacity": 99}],
            unique_fields=["room_number"],
            update_fields=["room_number"],
        )
        self.assertEqual(Room.objects.get(room_number="R1").capacity, 30)

    def test_upsert_with_only_key_fields_is_idempotent(self):
        user = get_user_model().objects.create_user(username="s1", password="secret")
        subject = Subject.objects.create(code="MATH101", name="Calculus")
        records = [{"student_id": user.pk, "subject_id": subject.pk}]

        self.gateway.upsert(Enrollment, records, unique_fields=["student", "subject"])
        stored = self.gateway.upsert(Enrollment, records, unique_fields=["student", "subject"])

        self.assertEqual(Enrollment.objects.count(), 1)
        self.assertEqual(stored[0].student_id, user.pk)

    def test_upsert_returns_every_stored_row(self):
        stored = self.gateway.upsert(
            Room,
            [{"room_number": "R2", "capacity": 10}, {"room_number": "R1", "capacity": 20}],
            unique_fields=["room_number"],
        )
        self.assertEqual({room.room_number for room in stored}, {"R1", "R2"})
        self.assertEqual(self.gateway.upsert(Room, [], unique_fields=["room_number"]), [])

    def test_conflict_target_without_unique_constraint(self):
        with self.assertRaises(ConstraintMissingError):
            self.gateway.upsert(
                Room,
                [{"room_number": "R1", "building": "Main"}],
                unique_fields=["building"],
                update_fields=["capacity"],
            )
        # The savepoint keeps the surrounding transaction usable.
        self.assertEqual(Room.objects.count(), 0)

    def test_other_database_errors_become_store_errors(self):
        Subject.objects.create(code="MATH101", name="Calculus")
        with self.assertRaises(StoreError) as ctx:
            self.gateway.insert(Subject, [{"code": "MATH101", "name": "Again"}])
        self.assertNotIsInstance(ctx.exception, ConstraintMissingError)
        self.assertEqual(Subject.objects.count(), 1)

    def test_select_insert_and_delete(self):
        self.gateway.insert(Room, [{"room_number": "B2"}, {"room_number": "A1"}])

        rooms = self.gateway.select(Room, order_by=("room_number",))
        self.assertEqual([room.room_number for room in rooms], ["A1", "B2"])
        self.assertEqual(rooms[0].capacity, 50)
        self.assertEqual(len(self.gateway.select(Room, room_number="B2")), 1)

        self.assertEqual(self.gateway.delete(Room, room_number="A1"), 1)
        self.assertEqual(self.gateway.insert(Room, []), [])
