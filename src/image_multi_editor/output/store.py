from __future__ import annotations

import json
import mimetypes
import re
import zipfile
from pathlib import Path
from typing import Iterable

from ..imaging import from_data_uri
from ..types import EntryStatus, ResultEntry

_EXTENSIONS = {"image/png": ".png", "image/jpeg": ".jpg", "image/webp": ".webp"}


def variation_filename(index: int, entry: ResultEntry, mime_type: str) -> str:
    """``variation_01_swap_burger_with_sus.png`` style name for one entry."""
    sanitized = re.sub(r"[^a-z0-9]", "_", entry.instruction, flags=re.IGNORECASE).lower()
    extension = _EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".png"
    return f"variation_{index:02d}_{sanitized[:20]}{extension}"


class OutputStore:
    """Write successful variations to disk, one directory per batch."""

    def __init__(self, root_dir: Path, batch_name: str) -> None:
        self.base_dir = Path(root_dir) / batch_name

    def _successful(self, entries: Iterable[ResultEntry]) -> list[tuple[str, bytes, ResultEntry]]:
        items: list[tuple[str, bytes, ResultEntry]] = []
        for entry in entries:
            if entry.status is not EntryStatus.SUCCESS or not entry.payload:
                continue
            data, mime_type = from_data_uri(entry.payload)
            items.append((variation_filename(len(items) + 1, entry, mime_type), data, entry))
        return items

    @staticmethod
    def _metadata(entry: ResultEntry) -> dict[str, object]:
        return {
            "id": entry.id,
            "instruction": entry.instruction,
            "mime_type": entry.mime_type,
            "source_id": entry.source_id,
        }

    def save(self, entries: Iterable[ResultEntry], include_metadata: bool = True) -> list[Path]:
        """Save every successful entry as an image file; pending and failed entries are skipped."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        saved: list[Path] = []
        for filename, data, entry in self._successful(entries):
            image_path = self.base_dir / filename
            image_path.write_bytes(data)
            if include_metadata:
                image_path.with_suffix(".json").write_text(
                    json.dumps(self._metadata(entry), indent=2), encoding="utf-8"
                )
            saved.append(image_path)
        return saved

    def export_zip(self, entries: Iterable[ResultEntry], filename: str = "variations.zip") -> Path | None:
        """Package every successful entry into one archive; returns None when there is nothing to export."""
        items = self._successful(entries)
        if not items:
            return None
        self.base_dir.mkdir(parents=True, exist_ok=True)
        archive_path = self.base_dir / filename
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, data, _ in items:
                archive.writestr(name, data)
        return archive_path
