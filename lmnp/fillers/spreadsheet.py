"""Fill the LMNP workbook template with openpyxl."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from lmnp.artifacts import ArtifactKind
from lmnp.errors import SerializationFailure, TemplateUnreadable
from lmnp.field_maps import SheetField
from lmnp.fillers.common import (
    FieldWriteWarning,
    FillResult,
    cell_value,
    discard,
    output_path_for,
    publish,
    stage_template,
)

logger = logging.getLogger(__name__)


class SpreadsheetFiller:
    kind = ArtifactKind.EXCEL

    def __init__(self, template_path: str, fields: Iterable[SheetField], output_dir: str):
        self.template_path = template_path
        self.fields = tuple(fields)
        self.output_dir = output_dir

    def fill(self, declaration_id: str, data: Mapping[str, Any]) -> FillResult:
        output_path = output_path_for(self.output_dir, self.kind, declaration_id)
        staged = stage_template(self.template_path, output_path)
        try:
            try:
                workbook = load_workbook(staged)
            except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
                raise TemplateUnreadable(f"Modèle Excel illisible ({exc})") from exc

            result = FillResult(kind=self.kind, file_path=output_path)
            self._write_fields(workbook, data, result)

            try:
                workbook.save(staged)
            except OSError as exc:
                raise SerializationFailure(f"Sauvegarde Excel impossible ({exc.strerror})") from exc
            publish(staged, output_path)
        finally:
            discard(staged)
        return result

    def _write_fields(self, workbook, data, result: FillResult) -> None:
        warnings = result.warnings
        for field in self.fields:
            sheet_name = next((s for s in field.sheets if s in workbook.sheetnames), None)
            if sheet_name is None:
                warnings.append(FieldWriteWarning(
                    f"{'|'.join(field.sheets)}!{field.cell}", "onglet absent"))
                continue
            try:
                workbook[sheet_name][field.cell].value = cell_value(data.get(field.key), field.type)
            except (AttributeError, ValueError) as exc:
                # merged cells are read-only in openpyxl
                warnings.append(FieldWriteWarning(f"{sheet_name}!{field.cell}", str(exc)))
                continue
            result.written += 1
