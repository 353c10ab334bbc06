import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Server Configuration
    PORT = int(os.environ.get('PORT') or 3000)
    BASE_URL = (os.environ.get('BASE_URL') or 'http://localhost:3000').rstrip('/')

    # Access gate for /generate
    API_KEY = os.environ.get('API_KEY') or None
    API_KEY_HEADER = os.environ.get('API_KEY_HEADER') or 'X-API-Key'

    # Download links and generated files live this long (milliseconds)
    RETENTION_MS = int(os.environ.get('RETENTION_MS') or 300000)
    EXPIRED_TOKEN_TTL_MS = int(os.environ.get('EXPIRED_TOKEN_TTL_MS') or 3600000)

    # Templates and generated files
    TEMPLATES_DIR = os.environ.get('TEMPLATES_DIR') or os.path.join(BASE_DIR, 'templates')
    OUTPUT_DIR = os.environ.get('OUTPUT_DIR') or os.path.join(BASE_DIR, 'public')
    EXCEL_TEMPLATE = os.environ.get('EXCEL_TEMPLATE') or 'modele-lmnp.xlsx'
    PDF_TEMPLATE = os.environ.get('PDF_TEMPLATE') or '2031-sd_5015.pdf'

    # Field maps
    FIELD_MAP_VERSION = os.environ.get('FIELD_MAP_VERSION') or '2031-sd-2024'
    FIELD_MAP_PATH = os.environ.get('FIELD_MAP_PATH') or None
    DUMP_PDF_FIELDS = _env_bool('DUMP_PDF_FIELDS')

    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
