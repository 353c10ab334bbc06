"""Versioned field maps linking declaration data keys to template fields.

Each ``<version>.json`` file next to this module describes, for one
revision of the templates, which spreadsheet cell and which AcroForm field
receives which value of the declaration payload.  Revisions of the CERFA
rename fields from year to year; adding a new JSON file is enough to follow
them.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from openpyxl.utils.cell import coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException

from lmnp.errors import ConfigurationError

FIELD_MAPS_DIR = Path(__file__).resolve().parent

TEXT = "text"
NUMBER = "number"
_TYPES = (TEXT, NUMBER)


@dataclass(frozen=True)
class SheetField:
    key: str
    sheets: Tuple[str, ...]
    cell: str
    type: str = TEXT


@dataclass(frozen=True)
class FormField:
    field: str
    key: Optional[str] = None
    sources: Tuple[str, ...] = ()
    type: str = TEXT


@dataclass(frozen=True)
class FieldMap:
    version: str
    excel: Tuple[SheetField, ...]
    pdf: Tuple[FormField, ...]


def _require(entry: dict, name: str, where: str):
    value = entry.get(name)
    if value in (None, "", []):
        raise ConfigurationError(f"Field map {where}: '{name}' manquant")
    return value


def _check_type(entry: dict, where: str) -> str:
    kind = entry.get("type", TEXT)
    if kind not in _TYPES:
        raise ConfigurationError(f"Field map {where}: type inconnu {kind!r}")
    return kind


def _parse_sheet_field(entry: dict, index: int) -> SheetField:
    where = f"excel[{index}]"
    key = _require(entry, "key", where)
    cell = str(_require(entry, "cell", where)).upper()
    try:
        coordinate_from_string(cell)
    except (CellCoordinatesException, ValueError):
        raise ConfigurationError(f"Field map {where}: cellule invalide {cell!r}") from None
    sheets = _require(entry, "sheets", where)
    if isinstance(sheets, str):
        sheets = [sheets]
    return SheetField(key=key, sheets=tuple(sheets), cell=cell, type=_check_type(entry, where))


def _parse_form_field(entry: dict, index: int) -> FormField:
    where = f"pdf[{index}]"
    name = _require(entry, "field", where)
    key = entry.get("key")
    sources = entry.get("sources") or ()
    if not key and not sources:
        raise ConfigurationError(f"Field map {where}: 'key' ou 'sources' requis")
    return FormField(field=name, key=key, sources=tuple(sources), type=_check_type(entry, where))


def parse_field_map(document: dict) -> FieldMap:
    """Validate a decoded field map document and return a :class:`FieldMap`."""
    if not isinstance(document, dict):
        raise ConfigurationError("Field map: objet JSON attendu")
    version = _require(document, "version", "racine")
    excel = (document.get("excel") or {}).get("fields") or []
    pdf = (document.get("pdf") or {}).get("fields") or []
    return FieldMap(
        version=version,
        excel=tuple(_parse_sheet_field(e, i) for i, e in enumerate(excel)),
        pdf=tuple(_parse_form_field(e, i) for i, e in enumerate(pdf)),
    )


def load_field_map(version: str, path: str | None = None) -> FieldMap:
    """Load the field map *version*, or the explicit JSON file at *path*."""
    source = Path(path) if path else FIELD_MAPS_DIR / f"{version}.json"
    try:
        with open(source, encoding="utf-8") as fh:
            document = json.load(fh)
    except FileNotFoundError:
        raise ConfigurationError(f"Field map introuvable : {source}") from None
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Field map illisible : {source} ({exc})") from None
    return parse_field_map(document)


def available_versions() -> list[str]:
    return sorted(p.stem for p in FIELD_MAPS_DIR.glob("*.json"))


__all__ = [
    "FieldMap",
    "FormField",
    "SheetField",
    "NUMBER",
    "TEXT",
    "available_versions",
    "load_field_map",
    "parse_field_map",
]
