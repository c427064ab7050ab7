"""Bulk creation of a group from a CSV roster."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Union

from sqlalchemy.orm import Session

from .workflows import add_participant, create_group

logger = logging.getLogger(__name__)

# Header aliases accepted for each column; the Portuguese headers come from
# rosters exported for earlier editions of the exchange.
NAME_HEADERS = ("name", "nome")
EMAIL_HEADERS = ("email", "e-mail")


def _pick(row: dict[str, str], headers: Iterable[str]) -> str:
    for key, value in row.items():
        if key is not None and key.strip().lower() in headers:
            return (value or "").strip()
    return ""


def import_csv(
    session: Session,
    path: Union[str, Path],
    group_name: str,
) -> tuple[int, list[int]]:
    """Create ``group_name`` and add one participant per CSV row.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    path : Union[str, Path]
        CSV file with a header row containing ``Name`` and ``Email`` columns.
    group_name : str
        Name of the group to create.

    Returns
    -------
    tuple[int, list[int]]
        The new group id and the ids of the created participants.

    Raises
    ------
    ValueError
        If the header lacks a required column or a row is incomplete.
    """
    with open(path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        headers = {h.strip().lower() for h in reader.fieldnames or [] if h}
        if not headers & set(NAME_HEADERS) or not headers & set(EMAIL_HEADERS):
            raise ValueError(f"{path}: header must contain Name and Email columns")

        group = create_group(session, group_name)
        participant_ids: list[int] = []
        for row in reader:
            name = _pick(row, NAME_HEADERS)
            email = _pick(row, EMAIL_HEADERS)
            if not name and not email:
                continue
            if not name or not email:
                raise ValueError(f"{path}:{reader.line_num}: row needs both Name and Email")
            participant = add_participant(session, group.id, name, email)
            participant_ids.append(participant.id)

    logger.info(
        f"Imported {len(participant_ids)} participants into group {group.id} from {path}"
    )
    return group.id, participant_ids


__all__ = ["import_csv"]
