"""Declaration pipeline: validate, fill both templates, hand out download links."""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, BinaryIO, Dict, Mapping, Tuple

from lmnp.artifacts import ArtifactKind
from lmnp.errors import KindMismatch, StreamingFailure, ValidationError
from lmnp.fillers import TemplateFiller
from lmnp.reaper import FileReaper
from lmnp.tokens import DownloadToken, DownloadTokenRegistry

logger = logging.getLogger(__name__)

DECLARATION_ID_MAX_LENGTH = 128
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9-]+")

# Excel first, then the CERFA, as the declaration tool always did.
GENERATION_ORDER = (ArtifactKind.EXCEL, ArtifactKind.PDF)


def sanitize_declaration_id(value: Any) -> str:
    """Reduce *value* to letters, digits and hyphens.

    The result is used verbatim as a file name and a URL segment.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError("declarationId doit être une chaîne")
    cleaned = _UNSAFE_ID_CHARS.sub("-", str(value).strip()).strip("-")
    if not cleaned:
        raise ValidationError("declarationId invalide")
    if len(cleaned) > DECLARATION_ID_MAX_LENGTH:
        raise ValidationError("declarationId trop long")
    return cleaned


@dataclass(frozen=True)
class GenerationRequest:
    declaration_id: str
    data: Mapping[str, Any]

    @classmethod
    def from_payload(cls, payload: Any) -> "GenerationRequest":
        if not isinstance(payload, dict):
            raise ValidationError()
        declaration_id = payload.get("declarationId")
        data = payload.get("data")
        if declaration_id in (None, "") or not data:
            raise ValidationError()
        if not isinstance(data, dict):
            raise ValidationError("data doit être un objet")
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                raise ValidationError(f"data.{key} doit être un texte ou un nombre")
            if isinstance(value, float) and not math.isfinite(value):
                raise ValidationError(f"data.{key} doit être un nombre fini")
        return cls(sanitize_declaration_id(declaration_id), data)


class DeclarationService:
    def __init__(
        self,
        filler: TemplateFiller,
        registry: DownloadTokenRegistry,
        reaper: FileReaper,
        base_url: str,
        retention: timedelta,
    ):
        self.filler = filler
        self.registry = registry
        self.reaper = reaper
        self.base_url = base_url.rstrip("/")
        self.retention = retention

    def download_url(self, kind: ArtifactKind, token: str) -> str:
        return f"{self.base_url}/download/{kind.value}/{token}"

    def generate(self, generation: GenerationRequest) -> Dict[ArtifactKind, str]:
        """Produce both documents and return one download URL per kind.

        Each file is handed to the reaper as soon as it exists, so a failure
        on the second document leaves the first to expire on its own.  Tokens
        are only registered once both documents are written.
        """
        logger.info("[%s] generation started", generation.declaration_id)
        paths: Dict[ArtifactKind, str] = {}
        for kind in GENERATION_ORDER:
            path = self.filler.fill(kind, generation.declaration_id, generation.data)
            self.reaper.schedule_deletion(path, self.retention.total_seconds())
            paths[kind] = path

        urls = {
            kind: self.download_url(kind, self.registry.register(path, kind))
            for kind, path in paths.items()
        }
        logger.info("[%s] generation finished", generation.declaration_id)
        return urls

    def open_download(self, kind_value: str, token: str) -> Tuple[BinaryIO, DownloadToken]:
        """Resolve a download link to an open file handle.

        Raises ``UnknownKind``, ``TokenNotFound``, ``TokenExpired``,
        ``KindMismatch`` or ``StreamingFailure``.
        """
        kind = ArtifactKind.parse(kind_value)
        record = self.registry.lookup(token)
        if record.kind is not kind:
            raise KindMismatch()
        try:
            handle = open(record.file_path, "rb")
        except OSError as exc:
            # the reaper may have run before the token expired
            logger.error("Download %s token %s...: %s", kind.value, token[:6], exc)
            raise StreamingFailure() from exc
        logger.info("Serving %s token %s...", kind.value, token[:6])
        return handle, record
