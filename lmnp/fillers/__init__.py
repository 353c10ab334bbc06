"""Template fillers.

:class:`TemplateFiller` is the single entry point used by the service: it
picks the spreadsheet or the form filler for a kind, runs it and logs the
non-fatal field warnings.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping

from lmnp.artifacts import ArtifactKind
from lmnp.field_maps import FieldMap
from lmnp.fillers.common import FieldWriteWarning, FillResult
from lmnp.fillers.form import FormFiller
from lmnp.fillers.spreadsheet import SpreadsheetFiller

logger = logging.getLogger(__name__)


def resolve_template(templates_dir: str, name: str) -> str:
    return name if os.path.isabs(name) else os.path.join(templates_dir, name)


class TemplateFiller:
    def __init__(self, fillers: Dict[ArtifactKind, Any]):
        self.fillers = fillers

    @classmethod
    def from_config(cls, config: Mapping[str, Any], field_map: FieldMap) -> "TemplateFiller":
        templates_dir = config["TEMPLATES_DIR"]
        output_dir = config["OUTPUT_DIR"]
        return cls({
            ArtifactKind.EXCEL: SpreadsheetFiller(
                resolve_template(templates_dir, config["EXCEL_TEMPLATE"]),
                field_map.excel,
                output_dir,
            ),
            ArtifactKind.PDF: FormFiller(
                resolve_template(templates_dir, config["PDF_TEMPLATE"]),
                field_map.pdf,
                output_dir,
                dump_fields=config.get("DUMP_PDF_FIELDS", False),
            ),
        })

    def fill_report(self, kind: ArtifactKind, declaration_id: str,
                    data: Mapping[str, Any]) -> FillResult:
        result = self.fillers[kind].fill(declaration_id, data)
        for warning in result.warnings:
            logger.warning("[%s] %s field %r not written: %s",
                           declaration_id, kind.value, warning.field, warning.reason)
        logger.info("[%s] %s generated at %s (%d fields, %d warnings) -> %s",
                    declaration_id, kind.value, result.created_at.isoformat(), result.written,
                    len(result.warnings), result.file_path)
        return result

    def fill(self, kind: ArtifactKind, declaration_id: str, data: Mapping[str, Any]) -> str:
        """Fill the *kind* template for *declaration_id* and return the output path."""
        return self.fill_report(kind, declaration_id, data).file_path


__all__ = [
    "FieldWriteWarning",
    "FillResult",
    "FormFiller",
    "SpreadsheetFiller",
    "TemplateFiller",
    "resolve_template",
]
