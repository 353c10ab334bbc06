"""Helpers shared by the spreadsheet and form fillers."""
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping
from uuid import uuid4

from lmnp.artifacts import ArtifactKind
from lmnp.errors import SerializationFailure, TemplateNotFound
from lmnp.field_maps import NUMBER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldWriteWarning:
    """A field of the map that could not be written; never fatal."""

    field: str
    reason: str


@dataclass
class FillResult:
    kind: ArtifactKind
    file_path: str
    written: int = 0
    warnings: List[FieldWriteWarning] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_text(value: Any) -> str:
    """Natural text form of a payload value (``1500.0`` → ``"1500"``)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def cell_value(value: Any, field_type: str):
    """Value to store in a spreadsheet cell: numbers stay numeric."""
    if is_blank(value):
        return 0 if field_type == NUMBER else ""
    if is_number(value):
        return value
    return to_text(value)


def field_text(value: Any, field_type: str) -> str:
    if is_blank(value):
        return "0" if field_type == NUMBER else ""
    return to_text(value)


class _BlankMissing(dict):
    def __missing__(self, key):
        return ""


def render_sources(sources, data: Mapping[str, Any]) -> str:
    """Render each format string with *data*; first non-blank result wins."""
    values = _BlankMissing((str(k), to_text(v)) for k, v in data.items())
    for source in sources:
        text = " ".join(source.format_map(values).split())
        if text:
            return text
    return ""


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def output_path_for(output_dir: str, kind: ArtifactKind, declaration_id: str) -> str:
    return os.path.abspath(os.path.join(output_dir, kind.value, kind.filename(declaration_id)))


def stage_template(template_path: str, output_path: str) -> str:
    """Copy *template_path* to a private sibling of *output_path* and return it.

    The template itself is never opened for writing.
    """
    if not os.path.isfile(template_path):
        raise TemplateNotFound(f"Modèle introuvable : {os.path.basename(template_path)}")
    try:
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
    except OSError as exc:
        raise SerializationFailure(f"Dossier de sortie inaccessible ({exc.strerror})") from exc
    base, extension = os.path.splitext(output_path)
    staged = f"{base}.{uuid4().hex}.tmp{extension}"
    try:
        shutil.copyfile(template_path, staged)
    except FileNotFoundError as exc:
        raise TemplateNotFound(f"Modèle introuvable : {os.path.basename(template_path)}") from exc
    except OSError as exc:
        raise SerializationFailure(f"Copie du modèle impossible ({exc.strerror})") from exc
    return staged


def publish(staged_path: str, output_path: str) -> None:
    """Atomically move the filled copy to its final name."""
    try:
        os.replace(staged_path, output_path)
    except OSError as exc:
        raise SerializationFailure(f"Écriture du fichier impossible ({exc.strerror})") from exc


def discard(staged_path: str) -> None:
    try:
        os.remove(staged_path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove staging file %s: %s", staged_path, exc)
