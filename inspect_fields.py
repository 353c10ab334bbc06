#!/usr/bin/env python3
# inspect_fields.py
"""List the fields of the templates and check them against a field map.

Run from project root::

    python inspect_fields.py
    python inspect_fields.py --pdf other.pdf --version 2031-sd-2024

Exit status is 1 when the field map names a sheet or a PDF field that the
templates do not have.
"""
import argparse
import sys

from openpyxl import load_workbook

from config import Config
from lmnp.errors import ServiceError
from lmnp.field_maps import available_versions, load_field_map
from lmnp.fillers import resolve_template
from lmnp.fillers.form import iter_widgets, read_form


def pdf_field_names(path):
    reader = read_form(path)
    return sorted({name for name, _ in iter_widgets(reader.Root.AcroForm.Fields)})


def workbook_sheet_names(path):
    workbook = load_workbook(path, read_only=True)
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


def missing_entries(field_map, pdf_fields, sheet_names):
    missing = []
    for entry in field_map.pdf:
        if entry.field not in pdf_fields:
            missing.append(f"PDF field {entry.field!r} (key {entry.key or entry.sources})")
    for entry in field_map.excel:
        if not any(sheet in sheet_names for sheet in entry.sheets):
            missing.append(f"sheet {'|'.join(entry.sheets)} for {entry.cell} (key {entry.key})")
    return missing


def build_parser():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--pdf", default=resolve_template(Config.TEMPLATES_DIR, Config.PDF_TEMPLATE))
    parser.add_argument("--excel", default=resolve_template(Config.TEMPLATES_DIR, Config.EXCEL_TEMPLATE))
    parser.add_argument("--version", default=Config.FIELD_MAP_VERSION,
                        help="field map version (%s)" % ", ".join(available_versions()))
    parser.add_argument("--field-map", default=Config.FIELD_MAP_PATH,
                        help="explicit field map JSON file")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        field_map = load_field_map(args.version, args.field_map)
        pdf_fields = pdf_field_names(args.pdf)
        sheets = workbook_sheet_names(args.excel)
    except (ServiceError, OSError) as exc:
        print(f"Error: {exc}")
        return 2

    print(f"===== {len(pdf_fields)} PDF fields in {args.pdf} =====")
    for i, name in enumerate(pdf_fields, 1):
        print(f"{i}. {name}")
    print(f"\n===== {len(sheets)} sheets in {args.excel} =====")
    for name in sheets:
        print(f"- {name}")

    missing = missing_entries(field_map, set(pdf_fields), sheets)
    print(f"\n===== field map {field_map.version}: {len(missing)} missing =====")
    for line in missing:
        print(f"✗ {line}")
    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())
