"""Command-line front end for managing groups and running draws."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import workflows
from .config import Settings
from .db.engine import get_sessionmaker, make_engine
from .db.migrations import upgrade_db
from .draw import AuditLog, DrawController, DrawRunReport
from .errors import SecretSantaError
from .importer import import_csv
from .mail.transport import make_transport

logger = logging.getLogger(__name__)


def _dump(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _controller(session: Session, settings: Settings, args: argparse.Namespace) -> DrawController:
    """Controller wired for dispatch; every audit write is committed at once."""
    return DrawController(
        session,
        transport=make_transport(settings),
        formatter=settings.make_formatter(),
        audit=AuditLog(session, durable=True),
        verify_roster=not getattr(args, "no_verify", False),
    )


def _print_report(report: DrawRunReport) -> None:
    if report.cleared_ids:
        print(f"Cleared {len(report.cleared_ids)} previous dispatch records")
    for record in report.records:
        if record.succeeded:
            print(f"Send to participant {record.giver_id} succeeded (record {record.id})")
        else:
            print(
                f"Send to participant {record.giver_id} failed (record {record.id}): "
                f"{record.error}"
            )
    print(f"Draw {report.draw.id}: {report.succeeded} sent, {report.failed} failed")


# -------- group --------
def cmd_group_new(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    group = workflows.create_group(session, args.name)
    print(f"Created group {group.name!r} with id {group.id}")


def cmd_group_rm(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    workflows.delete_group(session, args.id)
    print(f"Deleted group {args.id}")


def cmd_group_ls(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    for group in workflows.list_groups(session):
        print(f"{group.id}\t{group.name}")


# -------- participant --------
def cmd_participant_add(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    participant = workflows.add_participant(session, args.group, args.name, args.email)
    print(f"Created participant with id {participant.id}")


def cmd_participant_rm(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    workflows.remove_participant(session, args.id)
    print(f"Removed participant {args.id}")


def cmd_participant_inspect(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    _dump(workflows.get_participant(session, args.id).to_json())


def cmd_participant_ls(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    for p in workflows.list_participants(session, args.group):
        print(f"{p.id}\t{p.group_id}\t{p.name}\t<{p.email}>")


def cmd_participant_set(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    field = workflows.ParticipantField(args.field)
    workflows.update_participant(session, args.id, field, args.value)
    print(f"Updated {field.value} of participant {args.id}")


# -------- draw --------
def cmd_draw_new(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    draw = DrawController(session).create(args.group)
    print(f"Created draw {draw.id} over {draw.participant_count} participants")
    print(f"Use `secretsanta draw run {draw.id}` to run it")


def cmd_draw_run(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    report = _controller(session, settings, args).run(
        args.draw, replace_previous=args.replace
    )
    _print_report(report)


def cmd_draw_redo(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    _print_report(_controller(session, settings, args).redo(args.draw))


def cmd_draw_ls(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    for draw in DrawController(session).list_draws(args.group):
        print(
            f"{draw.id}\tgroup {draw.group_id}\t{draw.participant_count} participants"
            f"\t{draw.fingerprint[:12]}"
        )


def cmd_draw_inspect(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    draw = DrawController(session).get(args.draw)
    _dump(draw.to_json(include_seed=args.show_seed))


# -------- dispatch --------
def cmd_dispatch_ls(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    audit = AuditLog(session)
    if args.draw is not None:
        DrawController(session).get(args.draw)
        records = audit.list_by_draw(args.draw)
    else:
        records = audit.list_all()
    for r in records:
        status = "ok" if r.succeeded else f"failed: {r.error}"
        print(f"{r.id}\tdraw {r.draw_id}\tparticipant {r.giver_id}\t{status}")


def cmd_dispatch_inspect(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    _dump(AuditLog(session).get(args.id).to_json(include_recipient=args.reveal))


def cmd_dispatch_redo(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    record = _controller(session, settings, args).redo_one(args.id)
    outcome = "succeeded" if record.succeeded else f"failed: {record.error}"
    print(f"Resend to participant {record.giver_id} {outcome} (record {record.id})")


def cmd_dispatch_rm(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    AuditLog(session).delete(args.id)
    print(f"Deleted dispatch record {args.id}")


# -------- import / db --------
def cmd_import(session: Session, settings: Settings, args: argparse.Namespace) -> None:
    group_id, participant_ids = import_csv(session, args.path, args.group_name)
    print(f"Created group {group_id} with {len(participant_ids)} participants")


Handler = Callable[[Session, Settings, argparse.Namespace], None]

# Commands that talk to the SMTP relay and therefore need mail settings.
SENDING_COMMANDS = {cmd_draw_run, cmd_draw_redo, cmd_dispatch_redo}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secretsanta",
        description="Run seeded Secret Santa draws and email every participant.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create or upgrade the database schema")

    group = sub.add_parser("group", help="Manage groups").add_subparsers(
        dest="action", required=True
    )
    p = group.add_parser("new", help="Create a group")
    p.add_argument("name")
    p.set_defaults(handler=cmd_group_new)
    p = group.add_parser("rm", help="Delete a group and everything in it")
    p.add_argument("id", type=int)
    p.set_defaults(handler=cmd_group_rm)
    p = group.add_parser("ls", help="List groups")
    p.set_defaults(handler=cmd_group_ls)

    participant = sub.add_parser("participant", help="Manage participants").add_subparsers(
        dest="action", required=True
    )
    p = participant.add_parser("add", help="Add a participant to a group")
    p.add_argument("group", type=int)
    p.add_argument("name")
    p.add_argument("email")
    p.set_defaults(handler=cmd_participant_add)
    p = participant.add_parser("rm", help="Remove a participant")
    p.add_argument("id", type=int)
    p.set_defaults(handler=cmd_participant_rm)
    p = participant.add_parser("inspect", help="Show a participant")
    p.add_argument("id", type=int)
    p.set_defaults(handler=cmd_participant_inspect)
    p = participant.add_parser("ls", help="List participants")
    p.add_argument("-g", "--group", type=int, default=None)
    p.set_defaults(handler=cmd_participant_ls)
    p = participant.add_parser("set", help="Change a participant's name or email")
    p.add_argument("id", type=int)
    p.add_argument("field", choices=[f.value for f in workflows.ParticipantField])
    p.add_argument("value")
    p.set_defaults(handler=cmd_participant_set)

    draw = sub.add_parser("draw", help="Create and run draws").add_subparsers(
        dest="action", required=True
    )
    p = draw.add_parser("new", help="Create a draw for a group")
    p.add_argument("group", type=int)
    p.set_defaults(handler=cmd_draw_new)
    p = draw.add_parser("run", help="Run a draw and email every participant")
    p.add_argument("draw", type=int)
    p.add_argument(
        "--replace",
        action="store_true",
        help="Delete the draw's previous dispatch records first",
    )
    p.add_argument(
        "--no-verify",
        action="store_true",
        help="Run even if the roster changed since the draw was created",
    )
    p.set_defaults(handler=cmd_draw_run)
    p = draw.add_parser("redo", help="Clear a draw's dispatch records and run it again")
    p.add_argument("draw", type=int)
    p.add_argument("--no-verify", action="store_true")
    p.set_defaults(handler=cmd_draw_redo)
    p = draw.add_parser("ls", help="List draws")
    p.add_argument("-g", "--group", type=int, default=None)
    p.set_defaults(handler=cmd_draw_ls)
    p = draw.add_parser("inspect", help="Show a draw")
    p.add_argument("draw", type=int)
    p.add_argument("--show-seed", action="store_true", help="Include the secret seed")
    p.set_defaults(handler=cmd_draw_inspect)

    dispatch = sub.add_parser("dispatch", help="Inspect and redo sends").add_subparsers(
        dest="action", required=True
    )
    p = dispatch.add_parser("ls", help="List dispatch records")
    p.add_argument("-d", "--draw", type=int, default=None)
    p.set_defaults(handler=cmd_dispatch_ls)
    p = dispatch.add_parser("inspect", help="Show a dispatch record")
    p.add_argument("id", type=int)
    p.add_argument("--reveal", action="store_true", help="Include the recipient id")
    p.set_defaults(handler=cmd_dispatch_inspect)
    p = dispatch.add_parser("redo", help="Resend one message as a new record")
    p.add_argument("id", type=int)
    p.set_defaults(handler=cmd_dispatch_redo)
    p = dispatch.add_parser("rm", help="Delete a dispatch record")
    p.add_argument("id", type=int)
    p.set_defaults(handler=cmd_dispatch_rm)

    p = sub.add_parser("import", help="Create a group from a CSV with Name and Email columns")
    p.add_argument("path")
    p.add_argument("group_name")
    p.set_defaults(handler=cmd_import)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    handler: Optional[Handler] = getattr(args, "handler", None)
    try:
        settings = Settings.from_env(require_smtp=handler in SENDING_COMMANDS)
    except SecretSantaError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.command == "init-db":
        upgrade_db(database_url=settings.database_url, keep_logging=True)
        print("Database schema is up to date")
        return 0

    if handler is None:
        parser.error("a subcommand is required")
    engine = make_engine(settings.database_url)
    Session = get_sessionmaker(engine)
    try:
        with Session() as session:
            try:
                handler(session, settings, args)
                session.commit()
            except (SecretSantaError, ValueError, IntegrityError) as exc:
                session.rollback()
                logger.debug("Command failed", exc_info=True)
                print(f"error: {exc}", file=sys.stderr)
                return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
