#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""AcroForm filler for the CERFA 2031-SD template.

Works directly on the form dictionary with :mod:`pdfrw`: every widget whose
name appears in the field map receives its value as a ``PdfString`` and its
appearance stream is cleared so the viewer redraws it (``NeedAppearances``).
Fields of the map that the template does not have are reported as
:class:`FieldWriteWarning` and skipped.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple

from pdfrw import PdfDict, PdfObject, PdfReader, PdfString, PdfWriter
from pdfrw.errors import PdfParseError

from lmnp.artifacts import ArtifactKind
from lmnp.errors import SerializationFailure, TemplateUnreadable
from lmnp.field_maps import FormField
from lmnp.fillers.common import (
    FieldWriteWarning,
    FillResult,
    discard,
    field_text,
    output_path_for,
    publish,
    render_sources,
    stage_template,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def clean_field_name(raw) -> str:
    """Return plain field name string from PdfString/PdfName/etc."""
    if hasattr(raw, "to_unicode"):
        raw = raw.to_unicode()
    text = str(raw).strip()
    return text.lstrip("(").rstrip(")").strip("\u200e\u200f")


def iter_widgets(fields) -> Iterator[Tuple[str, PdfDict]]:
    """Yield ``(name, node)`` for every named node of the AcroForm tree."""
    for node in fields or []:
        if node.T:
            yield clean_field_name(node.T), node
        yield from iter_widgets(node.Kids)


def read_form(path: str) -> PdfReader:
    try:
        reader = PdfReader(path)
    except (PdfParseError, OSError, ValueError) as exc:
        raise TemplateUnreadable(f"Modèle PDF illisible ({exc})") from exc
    if reader.Root is None or reader.Root.AcroForm is None:
        raise TemplateUnreadable("Modèle PDF sans formulaire AcroForm")
    return reader


def _update_widget(widget: PdfDict, value: str) -> None:
    widget.V = PdfString.from_unicode(value)
    widget.AP = PdfDict()  # clear appearance so Acrobat redraws


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class FormFiller:
    kind = ArtifactKind.PDF

    def __init__(self, template_path: str, fields: Iterable[FormField], output_dir: str,
                 dump_fields: bool = False):
        self.template_path = template_path
        self.fields = tuple(fields)
        self.output_dir = output_dir
        self.dump_fields = dump_fields

    def fill(self, declaration_id: str, data: Mapping[str, Any]) -> FillResult:
        output_path = output_path_for(self.output_dir, self.kind, declaration_id)
        staged = stage_template(self.template_path, output_path)
        try:
            reader = read_form(staged)
            widgets: Dict[str, List[PdfDict]] = {}
            for name, node in iter_widgets(reader.Root.AcroForm.Fields):
                widgets.setdefault(name, []).append(node)

            if self.dump_fields:
                logger.info("PDF template fields: %s", sorted(widgets))

            result = FillResult(kind=self.kind, file_path=output_path)
            for field in self.fields:
                nodes = widgets.get(field.field)
                if not nodes:
                    result.warnings.append(FieldWriteWarning(field.field, "champ PDF introuvable"))
                    continue
                try:
                    value = self._value_for(field, data)
                except (ValueError, AttributeError, IndexError) as exc:
                    result.warnings.append(FieldWriteWarning(field.field, f"format invalide ({exc})"))
                    continue
                for node in nodes:
                    _update_widget(node, value)
                result.written += 1

            reader.Root.AcroForm.NeedAppearances = PdfObject("true")
            try:
                PdfWriter().write(staged, reader)
            except OSError as exc:
                raise SerializationFailure(f"Sauvegarde PDF impossible ({exc.strerror})") from exc
            publish(staged, output_path)
        finally:
            discard(staged)
        return result

    @staticmethod
    def _value_for(field: FormField, data: Mapping[str, Any]) -> str:
        if field.key:
            return field_text(data.get(field.key), field.type)
        return render_sources(field.sources, data)
