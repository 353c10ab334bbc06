from datetime import datetime, timedelta, timezone

import pytest
from openpyxl import Workbook
from pdfrw import IndirectPdfDict, PdfArray, PdfDict, PdfName, PdfObject, PdfString, PdfWriter

from config import Config

PDF_FIELDS = [
    "Dénominationdelentreprise",
    "Adressedelentreprise",
    "Mél",
    "SIRET",
    "Annéeexercice",
    "Tab1col3 Total",
    "Tab1col4 Bénéfice imposable col1col2ouDéficit déductible col1col2",
]


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class ManualScheduler:
    """Collects timers instead of starting threads."""

    def __init__(self):
        self.jobs = []

    def __call__(self, delay_seconds, callback, *args):
        self.jobs.append((delay_seconds, callback, args))

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for _, callback, args in jobs:
            callback(*args)


def build_pdf_template(path, names=PDF_FIELDS):
    widgets = []
    for i, name in enumerate(names):
        y = 700 - i * 30
        widgets.append(IndirectPdfDict(
            Type=PdfName.Annot,
            Subtype=PdfName.Widget,
            FT=PdfName.Tx,
            T=PdfString.from_unicode(name),
            V=PdfString.from_unicode(""),
            Rect=PdfArray([50, y, 400, y + 20]),
        ))
    page = PdfDict(
        Type=PdfName.Page,
        MediaBox=PdfArray([0, 0, 612, 792]),
        Resources=PdfDict(),
        Contents=IndirectPdfDict(stream=""),
        Annots=PdfArray(widgets),
    )
    writer = PdfWriter()
    writer.addpage(page)
    writer.trailer.Root.AcroForm = PdfDict(
        Fields=PdfArray(widgets),
        NeedAppearances=PdfObject("false"),
    )
    writer.write(str(path))
    return path


def build_excel_template(path, sheets=("Identification", "Recap")):
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name in sheets:
        sheet = workbook.create_sheet(name)
        sheet["A1"] = name
    workbook.save(str(path))
    return path


@pytest.fixture
def templates_dir(tmp_path):
    folder = tmp_path / "templates"
    folder.mkdir()
    build_excel_template(folder / "modele-lmnp.xlsx")
    build_pdf_template(folder / "2031-sd_5015.pdf")
    return folder


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "public"


@pytest.fixture
def test_config(templates_dir, output_dir):
    class TestConfig(Config):
        TESTING = True
        API_KEY = "s3cret"
        API_KEY_HEADER = "X-API-Key"
        BASE_URL = "http://testserver"
        TEMPLATES_DIR = str(templates_dir)
        OUTPUT_DIR = str(output_dir)
        EXCEL_TEMPLATE = "modele-lmnp.xlsx"
        PDF_TEMPLATE = "2031-sd_5015.pdf"
        RETENTION_MS = 300000
        EXPIRED_TOKEN_TTL_MS = 3600000
        FIELD_MAP_VERSION = "2031-sd-2024"
        FIELD_MAP_PATH = None
        DUMP_PDF_FIELDS = False
        LOG_LEVEL = "DEBUG"

    return TestConfig


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def app(test_config, clock, scheduler):
    from lmnp import create_app

    return create_app(test_config, clock=clock, scheduler=scheduler)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(test_config):
    return {test_config.API_KEY_HEADER: test_config.API_KEY}
