from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from docqa.extraction import ExtractionRecord, ImagePart

DEFAULT_MAX_CHARS_PER_FILE = 20_000


@dataclass(frozen=True)
class AggregatedContext:
    text: str
    images: list[ImagePart]

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())

    @property
    def has_content(self) -> bool:
        return self.has_text or bool(self.images)


def format_block(record: ExtractionRecord, max_chars: int) -> str:
    return f"--- {record.name} ({record.extension}) ---\n{record.text[:max_chars]}"


def aggregate_records(records: Sequence[ExtractionRecord], max_chars: int = DEFAULT_MAX_CHARS_PER_FILE) -> AggregatedContext:
    blocks = [format_block(record, max_chars) for record in records if record.text and record.text.strip()]
    images = [record.image for record in records if record.image is not None]
    return AggregatedContext(text="\n\n".join(blocks), images=images)
