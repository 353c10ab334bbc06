from __future__ import annotations

from enum import Enum

from lmnp.errors import UnknownKind


class ArtifactKind(str, Enum):
    """The two documents produced for every declaration.

    The value doubles as the ``:kind`` URL segment and the output subfolder.
    """

    EXCEL = "excel"
    PDF = "pdf"

    @property
    def prefix(self) -> str:
        return {"excel": "lmnp", "pdf": "cerfa-2031"}[self.value]

    @property
    def extension(self) -> str:
        return {"excel": "xlsx", "pdf": "pdf"}[self.value]

    @property
    def mimetype(self) -> str:
        if self is ArtifactKind.EXCEL:
            return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        return "application/pdf"

    def filename(self, declaration_id: str) -> str:
        return f"{self.prefix}-{declaration_id}.{self.extension}"

    @classmethod
    def parse(cls, value) -> "ArtifactKind":
        try:
            return cls(value)
        except ValueError:
            raise UnknownKind() from None

