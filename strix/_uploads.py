"""
Upload file handling.

Provides:
- UploadFile: an uploaded file held in memory
- FormData: form fields plus uploaded files
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ._datastructures import MultiDict


@dataclass
class UploadFile:
    """Uploaded file representation."""

    filename: str
    content_type: str
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)

    async def read(self, size: int = -1) -> bytes:
        if size == -1:
            return self.content
        return self.content[:size]

    async def save(self, path: Union[str, Path], overwrite: bool = False) -> Path:
        """
        Write the upload to ``path``.

        Raises:
            FileExistsError: path exists and ``overwrite`` is False
        """
        dest = Path(path)
        if dest.exists() and not overwrite:
            raise FileExistsError(f"File already exists: {dest}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.content)
        return dest


@dataclass
class FormData:
    """Parsed form: text fields and uploaded files."""

    fields: MultiDict = field(default_factory=MultiDict)
    files: Dict[str, List[UploadFile]] = field(default_factory=dict)

    def get(self, name: str, default: Optional[Any] = None) -> Optional[Any]:
        """Field value if present, else the first file, else ``default``."""
        value = self.fields.get(name)
        if value is not None:
            return value
        upload = self.get_file(name)
        return upload if upload is not None else default

    def get_field(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(name, default)

    def get_file(self, name: str) -> Optional[UploadFile]:
        uploads = self.files.get(name)
        return uploads[0] if uploads else None

    def get_all_files(self, name: str) -> List[UploadFile]:
        return list(self.files.get(name, []))
