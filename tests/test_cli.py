import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import create_engine, inspect

from secretsanta import cli
from secretsanta.mail import OutgoingMessage, SendResult
from secretsanta.models import Base

SMTP_ENV = {
    "SMTP_SENDER": "Santa <santa@example.com>",
    "SMTP_RELAY": "smtp.example.com",
    "SMTP_USER": "santa",
    "SMTP_PASSWORD": "secret",
}


class FakeTransport:
    def __init__(self):
        self.sent: list[OutgoingMessage] = []
        self.fail_for: set[str] = set()

    def send(self, message: OutgoingMessage) -> SendResult:
        self.sent.append(message)
        if message.to_address in self.fail_for:
            return SendResult.failure("SMTPRecipientsRefused: mailbox unavailable")
        return SendResult.success()


class CliTestCase(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.db_path = Path(tmpdir.name) / "santa.db"
        self.db_url = f"sqlite:///{self.db_path}"

        env = patch.dict(os.environ, dict(SMTP_ENV, DB_URL=self.db_url))
        env.start()
        self.addCleanup(env.stop)

        self.transport = FakeTransport()
        transport_patch = patch("secretsanta.cli.make_transport", return_value=self.transport)
        transport_patch.start()
        self.addCleanup(transport_patch.stop)

    def create_schema(self):
        engine = create_engine(self.db_url, future=True)
        Base.metadata.create_all(engine)
        engine.dispose()

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def seed_group(self, *names):
        self.assertEqual(self.run_cli("group", "new", "family")[0], 0)
        for name in names:
            code, _out, _err = self.run_cli(
                "participant", "add", "1", name, f"{name.lower()}@example.com"
            )
            self.assertEqual(code, 0)


class InitDbTests(CliTestCase):
    def test_init_db_applies_migrations(self):
        code, out, _err = self.run_cli("init-db")

        self.assertEqual(code, 0)
        self.assertIn("up to date", out)
        engine = create_engine(self.db_url, future=True)
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        self.assertTrue(
            {"groups", "participants", "draws", "dispatch_records"} <= tables
        )


class DrawCommandTests(CliTestCase):
    def setUp(self):
        super().setUp()
        self.create_schema()

    def test_full_run(self):
        self.seed_group("Ana", "Bia", "Caio")

        code, out, _err = self.run_cli("draw", "new", "1")
        self.assertEqual(code, 0)
        self.assertIn("Created draw 1 over 3 participants", out)

        code, out, _err = self.run_cli("draw", "run", "1")
        self.assertEqual(code, 0)
        self.assertIn("Draw 1: 3 sent, 0 failed", out)
        self.assertEqual(
            sorted(m.to_address for m in self.transport.sent),
            ["ana@example.com", "bia@example.com", "caio@example.com"],
        )

        code, out, _err = self.run_cli("dispatch", "ls", "-d", "1")
        self.assertEqual(code, 0)
        self.assertEqual(len(out.strip().splitlines()), 3)

        code, out, _err = self.run_cli("draw", "inspect", "1")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["participant_count"], 3)
        self.assertNotIn("seed", data)

    def test_redo_replaces_records(self):
        self.seed_group("Ana", "Bia")
        self.run_cli("draw", "new", "1")
        self.run_cli("draw", "run", "1")

        code, out, _err = self.run_cli("draw", "redo", "1")

        self.assertEqual(code, 0)
        self.assertIn("Cleared 2 previous dispatch records", out)
        _code, out, _err = self.run_cli("dispatch", "ls")
        self.assertEqual(len(out.strip().splitlines()), 2)

    def test_failed_send_can_be_redone(self):
        self.seed_group("Ana", "Bia", "Caio")
        self.transport.fail_for.add("bia@example.com")
        self.run_cli("draw", "new", "1")

        code, out, _err = self.run_cli("draw", "run", "1")
        self.assertEqual(code, 0)
        self.assertIn("Draw 1: 2 sent, 1 failed", out)

        _code, out, _err = self.run_cli("dispatch", "ls")
        (failed_line,) = [line for line in out.splitlines() if "failed" in line]
        record_id = failed_line.split("\t")[0]

        self.transport.fail_for.clear()
        code, out, _err = self.run_cli("dispatch", "redo", record_id)
        self.assertEqual(code, 0)
        self.assertIn("succeeded", out)

        _code, out, _err = self.run_cli("dispatch", "inspect", record_id)
        self.assertFalse(json.loads(out)["succeeded"])

    def test_single_participant_run_fails_cleanly(self):
        self.seed_group("Ana")
        self.run_cli("draw", "new", "1")

        code, _out, err = self.run_cli("draw", "run", "1")

        self.assertEqual(code, 1)
        self.assertIn("at least 2 participants", err)
        self.assertEqual(self.transport.sent, [])

    def test_roster_drift_needs_no_verify(self):
        self.seed_group("Ana", "Bia")
        self.run_cli("draw", "new", "1")
        self.run_cli("participant", "add", "1", "Caio", "caio@example.com")

        code, _out, err = self.run_cli("draw", "run", "1")
        self.assertEqual(code, 1)
        self.assertIn("changed since creation", err)

        code, out, _err = self.run_cli("draw", "run", "1", "--no-verify")
        self.assertEqual(code, 0)
        self.assertIn("Draw 1: 3 sent, 0 failed", out)

    def test_participant_with_records_cannot_be_removed(self):
        self.seed_group("Ana", "Bia")
        self.run_cli("draw", "new", "1")
        self.run_cli("draw", "run", "1")

        code, _out, err = self.run_cli("participant", "rm", "1")

        self.assertEqual(code, 1)
        self.assertIn("error: Participant 1 is referenced by", err)
        _code, out, _err = self.run_cli("participant", "ls")
        self.assertEqual(len(out.strip().splitlines()), 2)

    def test_missing_draw(self):
        code, _out, err = self.run_cli("draw", "run", "42")
        self.assertEqual(code, 1)
        self.assertIn("Draw with id 42 does not exist", err)

    def test_sending_requires_smtp_settings(self):
        with patch.dict(os.environ, {"SMTP_RELAY": ""}):
            code, _out, err = self.run_cli("draw", "run", "1")
        self.assertEqual(code, 1)
        self.assertIn("SMTP_RELAY", err)


class ManagementCommandTests(CliTestCase):
    def setUp(self):
        super().setUp()
        self.create_schema()

    def test_participant_commands(self):
        self.seed_group("Ana")

        code, out, _err = self.run_cli("participant", "set", "1", "email", "ana@example.org")
        self.assertEqual(code, 0)
        _code, out, _err = self.run_cli("participant", "inspect", "1")
        self.assertEqual(json.loads(out)["email"], "ana@example.org")

        code, _out, err = self.run_cli("participant", "set", "1", "email", "nope")
        self.assertEqual(code, 1)
        self.assertIn("Invalid email", err)

        code, out, _err = self.run_cli("participant", "rm", "1")
        self.assertEqual(code, 0)
        _code, out, _err = self.run_cli("participant", "ls")
        self.assertEqual(out, "")

    def test_database_commands_work_without_smtp(self):
        with patch.dict(os.environ, {"SMTP_RELAY": "", "SMTP_SENDER": ""}):
            code, out, _err = self.run_cli("group", "new", "family")
            self.assertEqual(code, 0)
            _code, out, _err = self.run_cli("group", "ls")
        self.assertEqual(out.strip(), "1\tfamily")

    def test_import(self):
        csv_path = self.db_path.with_name("roster.csv")
        csv_path.write_text("Name,Email\nAna,ana@example.com\nBia,bia@example.com\n")

        code, out, _err = self.run_cli("import", str(csv_path), "family")

        self.assertEqual(code, 0)
        self.assertIn("with 2 participants", out)
        _code, out, _err = self.run_cli("participant", "ls", "-g", "1")
        self.assertEqual(len(out.strip().splitlines()), 2)

    def test_group_rm(self):
        self.seed_group("Ana", "Bia")
        self.run_cli("draw", "new", "1")

        code, _out, _err = self.run_cli("group", "rm", "1")

        self.assertEqual(code, 0)
        _code, out, _err = self.run_cli("draw", "ls")
        self.assertEqual(out, "")


if __name__ == "__main__":
    unittest.main()
