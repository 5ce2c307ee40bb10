"""Data model for translatable text records and per-run state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .path_address import format_path


class RecordKind:
    """Tag describing what a located string is (used in logs and prompts)."""
    DIALOGUE = "dialogue"
    CHOICE = "choice"
    NAME = "name"
    NICKNAME = "nickname"
    PROFILE = "profile"
    DESCRIPTION = "description"
    NOTE = "note"
    MESSAGE = "message"

    ALL = (DIALOGUE, CHOICE, NAME, NICKNAME, PROFILE, DESCRIPTION, NOTE, MESSAGE)


@dataclass
class TextRecord:
    """A single translatable string located inside a document."""
    kind: str              # One of RecordKind.ALL
    path: tuple            # Typed Key/Index steps from the document root
    original: str          # Source text exactly as found
    masked_text: str = ""  # Original with control codes -> placeholder
    codes: list = field(default_factory=list)  # [ControlCode] in source order
    translated: str = ""   # Filled after a successful batch, else original

    def __post_init__(self):
        if not self.masked_text:
            self.masked_text = self.original
        if not self.translated:
            self.translated = self.original

    @property
    def path_string(self) -> str:
        return format_path(self.path)

    @property
    def is_translated(self) -> bool:
        return self.translated != self.original


class FileState(Enum):
    PENDING = "pending"
    LOCATING = "locating"
    TRANSLATING = "translating"
    APPLYING = "applying"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class BatchResult:
    """Outcome of one request/response round trip."""
    index: int                 # 0-based batch number within the file
    ok: bool
    reason: str = "ok"         # "ok" | "service_error" | "empty_response" | "paused"
    message: str = ""
    translations: list = field(default_factory=list)
    applied: int = 0           # Records that took a reply line


@dataclass
class ApplyFailure:
    """A record whose path could not be written back."""
    path: str
    reason: str
    message: str = ""


@dataclass
class FileResult:
    """Everything the pipeline produced for one file."""
    filename: str
    state: FileState
    document: Any
    records: list = field(default_factory=list)
    batches: list = field(default_factory=list)
    apply_failures: list = field(default_factory=list)
    reason: str = ""

    @property
    def translated_count(self) -> int:
        return sum(1 for r in self.records if r.is_translated)

    @property
    def failed_batches(self) -> list:
        return [b for b in self.batches if not b.ok]


@dataclass
class RunStats:
    """Running totals for a translation session."""
    files_processed: int = 0
    texts_translated: int = 0
    total_texts: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    estimated_cost: float = 0.0

    def format_summary(self) -> str:
        parts = [f"{self.files_processed} file(s)",
                 f"{self.texts_translated}/{self.total_texts} texts"]
        if self.estimated_cost > 0:
            parts.append(f"${self.estimated_cost:,.4f}")
        return " | ".join(parts)


@dataclass
class RunContext:
    """State threaded through one translation run.

    The pause flag may be set from another thread; it is only read at batch
    and file boundaries.
    """
    config: Any                      # TranslationConfig
    service: Any                     # TranslationService
    stats: RunStats = field(default_factory=RunStats)
    batch_delay: float = 0.5         # Seconds between batches (rate limit)
    temperature: float = 0.3
    current_file: Optional[str] = None
    paused: bool = False

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False
