import os
import tempfile
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from secretsanta.errors import (
    GroupNotFoundError,
    ParticipantInUseError,
    ParticipantNotFoundError,
)
from secretsanta.importer import import_csv
from secretsanta.models import Base, DispatchRecord, Draw, Participant
from secretsanta.workflows import (
    ParticipantField,
    add_participant,
    create_group,
    delete_group,
    get_group,
    get_participant,
    list_groups,
    list_participants,
    remove_participant,
    update_participant,
)


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()


class GroupWorkflowTestCase(WorkflowTestCase):
    def test_create_and_list_groups(self):
        with self.Session.begin() as session:
            first = create_group(session, "  family ")
            second = create_group(session, "office")

            self.assertEqual(first.name, "family")
            self.assertEqual([g.id for g in list_groups(session)], [first.id, second.id])
            self.assertIs(get_group(session, first.id), first)

    def test_duplicate_or_blank_name_rejected(self):
        with self.Session() as session:
            create_group(session, "family")
            with self.assertRaises(ValueError):
                create_group(session, "family")
            with self.assertRaises(ValueError):
                create_group(session, "   ")

    def test_delete_group_removes_participants(self):
        with self.Session() as session:
            group = create_group(session, "family")
            participant = add_participant(session, group.id, "Ana", "ana@example.com")

            self.assertEqual(delete_group(session, group.id), group.id)

            with self.assertRaises(GroupNotFoundError):
                get_group(session, group.id)
            self.assertIsNone(session.get(Participant, participant.id))

    def test_missing_group(self):
        with self.Session() as session:
            with self.assertRaises(GroupNotFoundError) as ctx:
                delete_group(session, 99)
            self.assertEqual(ctx.exception.object_id, 99)
            self.assertIsInstance(ctx.exception, LookupError)


class ParticipantWorkflowTestCase(WorkflowTestCase):
    def test_add_and_list_participants(self):
        with self.Session() as session:
            family = create_group(session, "family")
            office = create_group(session, "office")
            ana = add_participant(session, family.id, "Ana", "ana@example.com")
            bia = add_participant(session, office.id, "Bia", "bia@example.com")
            caio = add_participant(session, family.id, "Caio", "caio@example.com")

            self.assertEqual(
                [p.id for p in list_participants(session, family.id)], [ana.id, caio.id]
            )
            self.assertEqual(
                [p.id for p in list_participants(session)], [ana.id, bia.id, caio.id]
            )

    def test_add_to_missing_group(self):
        with self.Session() as session:
            with self.assertRaises(GroupNotFoundError):
                add_participant(session, 5, "Ana", "ana@example.com")

    def test_add_with_invalid_email(self):
        with self.Session() as session:
            group = create_group(session, "family")
            with self.assertRaises(ValueError):
                add_participant(session, group.id, "Ana", "ana.example.com")

    def test_update_participant_fields(self):
        with self.Session() as session:
            group = create_group(session, "family")
            ana = add_participant(session, group.id, "Ana", "ana@example.com")

            update_participant(session, ana.id, ParticipantField.NAME, "Ana Maria")
            update_participant(session, ana.id, "email", "anamaria@example.com")

            participant = get_participant(session, ana.id)
            self.assertEqual(participant.name, "Ana Maria")
            self.assertEqual(participant.email, "anamaria@example.com")

    def test_update_rejects_unknown_field(self):
        with self.Session() as session:
            group = create_group(session, "family")
            ana = add_participant(session, group.id, "Ana", "ana@example.com")
            with self.assertRaises(ValueError):
                update_participant(session, ana.id, "group_id", "2")

    def test_remove_participant(self):
        with self.Session() as session:
            group = create_group(session, "family")
            ana = add_participant(session, group.id, "Ana", "ana@example.com")

            self.assertEqual(remove_participant(session, ana.id), ana.id)
            with self.assertRaises(ParticipantNotFoundError):
                get_participant(session, ana.id)
            with self.assertRaises(ParticipantNotFoundError):
                remove_participant(session, ana.id)

    def test_remove_participant_named_in_dispatch_records(self):
        with self.Session() as session:
            group = create_group(session, "family")
            ana = add_participant(session, group.id, "Ana", "ana@example.com")
            bia = add_participant(session, group.id, "Bia", "bia@example.com")
            draw = Draw(
                group_id=group.id, seed="s" * 32, fingerprint="f" * 64, participant_count=2
            )
            session.add(draw)
            session.flush()
            session.add(
                DispatchRecord(
                    draw_id=draw.id, giver_id=ana.id, recipient_id=bia.id, succeeded=True
                )
            )
            session.flush()

            for participant in (ana, bia):
                with self.assertRaises(ParticipantInUseError) as ctx:
                    remove_participant(session, participant.id)
                self.assertEqual(ctx.exception.record_count, 1)
            self.assertIs(get_participant(session, ana.id), ana)


class ImportCsvTestCase(WorkflowTestCase):
    def _write_csv(self, content: str) -> str:
        handle = tempfile.NamedTemporaryFile(
            "w", suffix=".csv", delete=False, encoding="utf-8", newline=""
        )
        with handle:
            handle.write(content)
        self.addCleanup(os.remove, handle.name)
        return handle.name

    def test_import_name_and_email_columns(self):
        path = self._write_csv(
            "Name,Email\nAna,ana@example.com\n\nBia, bia@example.com\n"
        )
        with self.Session() as session:
            group_id, ids = import_csv(session, path, "family")

            roster = list_participants(session, group_id)
            self.assertEqual([p.id for p in roster], ids)
            self.assertEqual([p.email for p in roster], ["ana@example.com", "bia@example.com"])
            self.assertEqual(get_group(session, group_id).name, "family")

    def test_import_portuguese_header(self):
        path = self._write_csv("Nome,E-mail\nJoão,joao@example.com\n")
        with self.Session() as session:
            group_id, ids = import_csv(session, path, "família")
            self.assertEqual(len(ids), 1)
            self.assertEqual(get_participant(session, ids[0]).name, "João")

    def test_import_rejects_bad_header(self):
        path = self._write_csv("Person,Address\nAna,ana@example.com\n")
        with self.Session() as session:
            with self.assertRaises(ValueError):
                import_csv(session, path, "family")
            self.assertEqual(list_groups(session), [])

    def test_import_rejects_incomplete_row(self):
        path = self._write_csv("Name,Email\nAna,ana@example.com\nBia,\n")
        with self.Session() as session:
            with self.assertRaises(ValueError) as ctx:
                import_csv(session, path, "family")
            self.assertIn(":3:", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
