import unittest

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from secretsanta.db.engine import make_engine
from secretsanta.errors import ImmutableRecordError
from secretsanta.models import Base, DispatchRecord, Draw, Group, Participant


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _group_with_draw(self, session):
        group = Group(name="office")
        group.participants.append(Participant(name="Ana", email="ana@example.com"))
        group.participants.append(Participant(name="Bia", email="bia@example.com"))
        session.add(group)
        session.flush()
        draw = Draw(group=group, seed="s" * 32, fingerprint="f" * 64, participant_count=2)
        session.add(draw)
        session.flush()
        return group, draw

    def test_group_get_by_name(self):
        with self.Session() as session:
            session.add(Group(name="family"))
            session.commit()

            found = Group.get_by_name(session, "family")
            self.assertIsNotNone(found)
            assert found is not None
            self.assertEqual(found.name, "family")
            self.assertIsNone(Group.get_by_name(session, "nobody"))

    def test_group_name_is_unique(self):
        with self.Session() as session:
            session.add(Group(name="family"))
            session.commit()
            session.add(Group(name="family"))
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_participant_email_is_validated(self):
        with self.assertRaises(ValueError):
            Participant(name="Ana", email="not-an-address")
        with self.assertRaises(ValueError):
            Participant(name="   ", email="ana@example.com")

        participant = Participant(name="  Ana ", email=" ana@example.com ")
        self.assertEqual(participant.name, "Ana")
        self.assertEqual(participant.email, "ana@example.com")
        self.assertEqual(participant.mailbox, "Ana <ana@example.com>")
        quoted = Participant(name="Silva, Ana", email="ana@example.com")
        self.assertEqual(quoted.mailbox, '"Silva, Ana" <ana@example.com>')

    def test_roster_is_ordered_by_id(self):
        with self.Session() as session:
            group, _draw = self._group_with_draw(session)
            roster = Participant.list_by_group(session, group.id)
            self.assertEqual([p.name for p in roster], ["Ana", "Bia"])
            self.assertLess(roster[0].id, roster[1].id)

    def test_draw_frozen_fields_reject_updates(self):
        with self.Session() as session:
            _group, draw = self._group_with_draw(session)
            session.commit()

            draw.participant_count = 3
            with self.assertRaises(ImmutableRecordError):
                session.commit()

    def test_draw_json_hides_seed(self):
        with self.Session() as session:
            _group, draw = self._group_with_draw(session)
            self.assertNotIn("seed", draw.to_json())
            self.assertEqual(draw.to_json(include_seed=True)["seed"], "s" * 32)

    def test_dispatch_record_json_hides_recipient(self):
        with self.Session() as session:
            group, draw = self._group_with_draw(session)
            ana, bia = group.participants
            record = DispatchRecord(
                draw_id=draw.id, giver_id=ana.id, recipient_id=bia.id, succeeded=True
            )
            session.add(record)
            session.flush()

            data = record.to_json()
            self.assertNotIn("recipient_id", data)
            self.assertEqual(data["giver_id"], ana.id)
            self.assertEqual(data["attempts"], 1)
            self.assertTrue(data["created_at"].endswith("+00:00"))
            self.assertEqual(record.to_json(include_recipient=True)["recipient_id"], bia.id)

    def test_deleting_group_cascades(self):
        with self.Session() as session:
            group, draw = self._group_with_draw(session)
            ana, bia = group.participants
            session.add(
                DispatchRecord(
                    draw_id=draw.id, giver_id=ana.id, recipient_id=bia.id, succeeded=True
                )
            )
            session.commit()

            session.delete(group)
            session.commit()

            for model in (Group, Participant, Draw, DispatchRecord):
                count = session.scalar(select(func.count()).select_from(model))
                self.assertEqual(count, 0, model.__name__)


class ForeignKeyTestCase(unittest.TestCase):
    def setUp(self):
        # make_engine turns on SQLite foreign key enforcement
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_referenced_participant_cannot_be_removed(self):
        with self.Session() as session:
            group = Group(name="office")
            ana = Participant(name="Ana", email="ana@example.com", group=group)
            bia = Participant(name="Bia", email="bia@example.com", group=group)
            session.add(group)
            session.flush()
            draw = Draw(
                group_id=group.id, seed="x" * 32, fingerprint="0" * 64, participant_count=2
            )
            session.add(draw)
            session.flush()
            session.add(
                DispatchRecord(
                    draw_id=draw.id, giver_id=ana.id, recipient_id=bia.id, succeeded=False
                )
            )
            session.commit()

            session.delete(ana)
            with self.assertRaises(IntegrityError):
                session.commit()


if __name__ == "__main__":
    unittest.main()
