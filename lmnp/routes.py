import os

from flask import Blueprint, current_app, jsonify, request, send_file

from lmnp.artifacts import ArtifactKind
from lmnp.auth import require_api_key
from lmnp.service import GenerationRequest

main_bp = Blueprint('main', __name__)


def get_service():
    return current_app.extensions['lmnp.service']


@main_bp.route('/ping', methods=['GET'])
def ping():
    return jsonify({"ok": True, "message": "Backend LMNP fonctionne"})


@main_bp.route('/generate', methods=['POST'])
@require_api_key
def generate():
    payload = request.get_json(silent=True)
    generation = GenerationRequest.from_payload(payload)

    urls = get_service().generate(generation)

    return jsonify({
        "ok": True,
        "pdfUrl": urls[ArtifactKind.PDF],
        "excelUrl": urls[ArtifactKind.EXCEL],
    }), 200


@main_bp.route('/download/<kind>/<token>', methods=['GET'])
def download(kind, token):
    handle, record = get_service().open_download(kind, token)
    return send_file(
        handle,
        mimetype=record.kind.mimetype,
        as_attachment=True,
        download_name=os.path.basename(record.file_path),
    )
