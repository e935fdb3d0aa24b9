"""
Data model for invoice matching runs.
Candidate files, match and copy outcomes, due-date groups and the reports built from them.
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Dict, List, Optional, Tuple, Union, Any
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from .config import MAX_GROUPS, MAX_IDENTIFIER_LENGTH, MAX_IDENTIFIERS_PER_GROUP


class InvalidBatchError(ValueError):
    """Raised when a batch request violates the accepted bounds."""


@dataclass(frozen=True)
class CandidateFile:
    """A document that may correspond to an invoice number."""

    name: str
    path: str
    size: Optional[int] = None


# ----- match outcomes -----

@dataclass(frozen=True)
class Found:
    identifier: str
    file: CandidateFile
    variant: str


@dataclass(frozen=True)
class NotFound:
    identifier: str


@dataclass(frozen=True)
class Ignored:
    identifier: str
    reason: str = "too-short"


MatchOutcome = Union[Found, NotFound, Ignored]


@dataclass
class SearchResult:
    """Outcome buckets of a batch search, each in input order."""

    found: List[Found] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


# ----- copy outcomes -----

@dataclass(frozen=True)
class Copied:
    sequence: int
    name: str
    source: CandidateFile


@dataclass(frozen=True)
class Failed:
    filename: str
    reason: str


CopyOutcome = Union[Copied, Failed]


# ----- groups and reports -----

_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

# Invoice number as accepted from the spreadsheet: trimmed, 1 to 50 characters
Identifier = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1,
                                              max_length=MAX_IDENTIFIER_LENGTH)]


def coerce_due_date(value: Any) -> Any:
    """Turn a 'YYYY-MM-DD' string or a datetime into a date; other values pass through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        if not _ISO_DATE.match(value):
            raise ValueError(f"Due date must be YYYY-MM-DD, got {value!r}")
        return date.fromisoformat(value)
    return value


class VencimentoGroup(BaseModel):
    """Invoice numbers sharing one due date, and so one destination folder."""

    model_config = ConfigDict(frozen=True)

    due_date: date
    identifiers: Tuple[Identifier, ...] = Field(min_length=1, max_length=MAX_IDENTIFIERS_PER_GROUP)

    @field_validator("due_date", mode="before")
    @classmethod
    def _iso_due_date(cls, value: Any) -> Any:
        return coerce_due_date(value)

    def unique_identifiers(self) -> List[str]:
        return list(dict.fromkeys(self.identifiers))


class BatchRequest(BaseModel):
    """A batch as submitted by the caller: 1 to 31 due-date groups."""

    groups: List[VencimentoGroup] = Field(min_length=1, max_length=MAX_GROUPS)


@dataclass
class GroupResult:
    due_date: date
    destination_folder: str
    total_notes: int = 0
    total_found: int = 0
    total_copied: int = 0
    total_not_found: int = 0
    total_ignored: int = 0
    total_errors: int = 0
    copied: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    errors: List[Failed] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["due_date"] = self.due_date.isoformat()
        return data


@dataclass
class BatchSummary:
    total_groups: int = 0
    total_notes: int = 0
    total_found: int = 0
    total_copied: int = 0
    total_not_found: int = 0
    total_ignored: int = 0
    total_errors: int = 0

    def add(self, group: GroupResult) -> None:
        self.total_notes += group.total_notes
        self.total_found += group.total_found
        self.total_copied += group.total_copied
        self.total_not_found += group.total_not_found
        self.total_ignored += group.total_ignored
        self.total_errors += group.total_errors


@dataclass
class BatchReport:
    groups: List[GroupResult] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.summary.total_errors == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "groups": [group.to_dict() for group in self.groups],
            "summary": asdict(self.summary),
            "elapsed_seconds": self.elapsed_seconds,
        }


# ----- preview -----

class PreviewStatus(Enum):
    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"
    IGNORED = "ignored"


@dataclass
class PreviewEntry:
    identifier: str
    status: PreviewStatus
    variants: List[str] = field(default_factory=list)
    candidates: List[CandidateFile] = field(default_factory=list)
    planned_name: Optional[str] = None
    message: str = ""


@dataclass
class FolderStatus:
    due_date: date
    path: str
    exists: bool
    empty: bool
    file_count: int
