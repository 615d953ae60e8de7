from pydantic import BaseModel, computed_field
from typing import Optional, List, Dict
from enum import Enum

# Order used when rendering summary text
ENTITY_PLURALS = {
    "property": "properties",
    "room": "rooms",
    "container": "containers",
    "item": "items",
    "category": "categories",
    "tag": "tags",
    "photo": "photos",
    "receipt": "receipts",
}


class RestoreStrategy(str, Enum):
    MERGE = "merge" # Match by natural key, snapshot wins for scalars
    REPLACE = "replace" # Wipe the live graph, insert the snapshot fresh


class SkippedRecord(BaseModel):
    entity_type: str
    source_id: str
    reason: str


class RestoreIssue(BaseModel):
    entity_type: str
    source_id: Optional[str] = None
    message: str


def _count_phrase(entity_type: str, count: int) -> str:
    noun = entity_type if count == 1 else ENTITY_PLURALS[entity_type]
    return f"{count} {noun}"


class RestoreSummary(BaseModel):
    strategy: RestoreStrategy
    created: Dict[str, int] = {}
    updated: Dict[str, int] = {}
    skipped: List[SkippedRecord] = []
    errors: List[RestoreIssue] = []
    completed: bool = False # False while running and after cancellation
    photo_files_restored: int = 0 # Archive restores only

    def record_created(self, entity_type: str) -> None:
        self.created[entity_type] = self.created.get(entity_type, 0) + 1

    def record_updated(self, entity_type: str) -> None:
        self.updated[entity_type] = self.updated.get(entity_type, 0) + 1

    def record_skipped(self, entity_type: str, source_id, reason: str) -> None:
        self.skipped.append(SkippedRecord(entity_type=entity_type, source_id=str(source_id), reason=reason))

    def record_error(self, entity_type: str, source_id, message: str) -> None:
        self.errors.append(RestoreIssue(
            entity_type=entity_type,
            source_id=str(source_id) if source_id is not None else None,
            message=message,
        ))

    @computed_field
    @property
    def summary_text(self) -> str:
        """One line for the user, e.g. 'Restored 5 items, 3 categories. 2 errors occurred.'"""
        restored = []
        for entity_type in ENTITY_PLURALS:
            count = self.created.get(entity_type, 0) + self.updated.get(entity_type, 0)
            if count:
                restored.append(_count_phrase(entity_type, count))

        parts = []
        if restored:
            parts.append(f"Restored {', '.join(restored)}.")
        if self.skipped:
            parts.append(f"{len(self.skipped)} skipped.")
        if self.errors:
            noun = "error" if len(self.errors) == 1 else "errors"
            parts.append(f"{len(self.errors)} {noun} occurred.")
        if not parts:
            return "No data was restored."
        return " ".join(parts)
