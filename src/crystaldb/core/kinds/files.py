"""
Codec for the 'files' kind.

Shapes:
- business: list of {"id": str, "name"?, "url"?, "size"?, "mimeType"?, "metadata"?}
- stored: same; absent optional fields are dropped

Notes:
- Tuples are accepted on input and stored as lists. Strings and mappings are rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypedDict

from ..errors import KindValueError
from .base import BaseCodec, copy_present, ensure_non_empty_str

_OPTIONAL_FIELDS = ("name", "url", "size", "mimeType", "metadata")


class FileResource(TypedDict, total=False):
    id: str
    name: str
    url: str
    size: int
    mimeType: str
    metadata: dict[str, Any]


def _ensure_file(entry: Any) -> FileResource:
    if not isinstance(entry, Mapping):
        raise KindValueError("File entry must be an object")
    out: dict[str, Any] = {
        "id": ensure_non_empty_str(entry.get("id"), "File resource requires a string 'id'")
    }
    copy_present(entry, out, _OPTIONAL_FIELDS)
    return out  # type: ignore[return-value]


class FilesCodec(BaseCodec):
    kind = "files"

    def _encode(self, value: Any) -> list[FileResource]:
        if not isinstance(value, (list, tuple)):
            raise KindValueError("Files value must be an array of file descriptors")
        return [_ensure_file(entry) for entry in value]


FILES_CODEC = FilesCodec()
