"""
Batch coordination: runs search and copy for every due-date group and builds the report.
"""

import os
import time
import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence, Union
from pydantic import ValidationError

from .config import DESTINATION_MISSING_MESSAGE, PATH_OUTSIDE_BASE_MESSAGE, SOURCE_MISSING_MESSAGE
from .copier import copy_resolved, sequential_name
from .index import CandidateIndex, IndexCache
from .matcher import resolve_all, search_batch
from .models import (
    BatchReport,
    BatchRequest,
    CandidateFile,
    Copied,
    Failed,
    FolderStatus,
    GroupResult,
    InvalidBatchError,
    PreviewEntry,
    PreviewStatus,
    VencimentoGroup,
    coerce_due_date,
)
from .settings import PathSettings, destination_folder, is_within_base, source_folder
from .sources import LocalFolderSource
from .utils import generate_variants

logger = logging.getLogger(__name__)


def parse_due_date(value: Union[str, date]) -> date:
    try:
        parsed = coerce_due_date(value)
    except ValueError as e:
        raise InvalidBatchError(str(e)) from e
    if not isinstance(parsed, date):
        raise InvalidBatchError(f"Due date must be YYYY-MM-DD, got {value!r}")
    return parsed


def validate_groups(groups: Sequence[Any]) -> List[VencimentoGroup]:
    """
    Check the batch against the accepted bounds.

    Groups may be VencimentoGroup instances or mappings with 'due_date' and
    'identifiers'; identifiers are trimmed.

    Raises:
        InvalidBatchError: when the batch has 0 or too many groups, a group
            has 0 or too many identifiers, an identifier is empty or too long,
            or a due date is not YYYY-MM-DD
    """
    try:
        request = BatchRequest(groups=list(groups) if groups else [])
    except (ValidationError, TypeError) as e:
        raise InvalidBatchError(f"Invalid batch: {e}") from e
    return request.groups


def folder_exists(path: str) -> bool:
    return os.path.isdir(path)


def folder_entry_count(path: str) -> int:
    try:
        return len(os.listdir(path))
    except OSError:
        return 0


class BatchCoordinator:
    """
    Runs matching and copying group by group.

    Without an explicit ``source``, each group searches the year folder derived
    from the settings. With one (memory upload, S3 prefix), every group searches it.
    """

    def __init__(self, settings: PathSettings, cache: Optional[IndexCache] = None, source=None):
        self.settings = settings
        self.cache = cache or IndexCache()
        self.source = source

    def source_for(self, group: VencimentoGroup):
        if self.source is not None:
            return self.source
        return LocalFolderSource(source_folder(self.settings, group.due_date.year))

    def run(self, groups: Sequence[Any]) -> BatchReport:
        """
        Process every group sequentially and independently.

        A group failure (missing source or destination) is recorded and the
        next group still runs. ``report.success`` is True only when no group
        recorded an error.
        """
        groups = validate_groups(groups)
        started = time.perf_counter()

        logger.info(f"[BATCH] Starting processing of {len(groups)} group(s)")

        report = BatchReport()
        report.summary.total_groups = len(groups)

        for group in groups:
            result = self.process_group(group)
            report.groups.append(result)
            report.summary.add(result)

        report.elapsed_seconds = time.perf_counter() - started
        logger.info(f"[BATCH] Finished in {report.elapsed_seconds:.2f}s "
                    f"(copied {report.summary.total_copied}, errors {report.summary.total_errors})")
        return report

    def process_group(self, group: VencimentoGroup) -> GroupResult:
        started = time.perf_counter()
        identifiers = group.unique_identifiers()
        destination = destination_folder(self.settings, group.due_date)
        source = self.source_for(group)

        logger.info(f"[BATCH] Group {group.due_date}: {len(identifiers)} invoice numbers")
        logger.info(f"[BATCH]   Source: {source.key}")
        logger.info(f"[BATCH]   Destination: {destination}")

        if not self.paths_within_base(group, destination):
            return self._failed_group(group, destination, identifiers, PATH_OUTSIDE_BASE_MESSAGE, started)
        if not source.exists():
            return self._failed_group(group, destination, identifiers, SOURCE_MISSING_MESSAGE, started)
        if not folder_exists(destination):
            return self._failed_group(group, destination, identifiers, DESTINATION_MISSING_MESSAGE, started)

        index = self.cache.get(source)
        search = search_batch(identifiers, index)
        outcomes = copy_resolved(search.found, destination, index.source)

        copied = [outcome.name for outcome in outcomes if isinstance(outcome, Copied)]
        errors = [outcome for outcome in outcomes if isinstance(outcome, Failed)]

        result = GroupResult(
            due_date=group.due_date,
            destination_folder=destination,
            total_notes=len(identifiers),
            total_found=len(search.found),
            total_copied=len(copied),
            total_not_found=len(search.not_found),
            total_ignored=len(search.ignored),
            total_errors=len(errors),
            copied=copied,
            not_found=search.not_found,
            ignored=search.ignored,
            errors=errors,
            elapsed_seconds=time.perf_counter() - started,
        )
        logger.info(f"[BATCH]   Result: {result.total_copied} copied, {result.total_not_found} not found, "
                    f"{result.total_ignored} ignored")
        return result

    def paths_within_base(self, group: VencimentoGroup, destination: str) -> bool:
        """The destination, and the year folder when no explicit source is set, must sit under the base path."""
        paths = [destination]
        if self.source is None:
            paths.append(source_folder(self.settings, group.due_date.year))
        return all(is_within_base(path, self.settings) for path in paths)

    def _failed_group(self, group: VencimentoGroup, destination: str, identifiers: List[str],
                      message: str, started: float) -> GroupResult:
        logger.error(f"[BATCH] Group {group.due_date}: {message}")
        return GroupResult(
            due_date=group.due_date,
            destination_folder=destination,
            total_notes=len(identifiers),
            total_not_found=len(identifiers),
            total_errors=1,
            not_found=list(identifiers),
            errors=[Failed(filename="N/A", reason=message)],
            elapsed_seconds=time.perf_counter() - started,
        )

    def check_destination_folders(self, due_dates: Iterable[Union[str, date]]) -> List[FolderStatus]:
        return check_destination_folders(self.settings, due_dates)

    def clear_cache(self) -> None:
        self.cache.clear()


def check_destination_folders(settings: PathSettings,
                              due_dates: Iterable[Union[str, date]]) -> List[FolderStatus]:
    """Report existence and emptiness of the destination folder of each due date."""
    statuses = []
    for value in due_dates:
        due_date = parse_due_date(value)
        path = destination_folder(settings, due_date)
        exists = folder_exists(path)
        count = folder_entry_count(path) if exists else 0
        if exists and count:
            logger.warning(f"Destination {path} already holds {count} file(s)")
        statuses.append(FolderStatus(due_date=due_date, path=path, exists=exists,
                                     empty=count == 0, file_count=count))
    return statuses


def _candidate_list(candidates) -> List[CandidateFile]:
    if isinstance(candidates, CandidateIndex):
        return list(candidates.files)
    if hasattr(candidates, "iter_files"):
        return list(candidates.iter_files())
    return list(candidates)


def preview_group(identifiers: Iterable[str], candidates) -> List[PreviewEntry]:
    """
    Classify invoice numbers against an unindexed candidate list before copying.

    Every matching file is collected so ambiguous numbers can be flagged; the
    first candidate is still planned for copy. Matched and ambiguous entries
    get a planned "{n}- {filename}" name in order.
    """
    files = _candidate_list(candidates)
    entries = []
    counter = 0

    for identifier in identifiers:
        variants = generate_variants(identifier)
        if not variants:
            entries.append(PreviewEntry(identifier=identifier, status=PreviewStatus.IGNORED,
                                        message="invoice number too short"))
            continue

        matches = resolve_all(identifier, files)
        if not matches:
            logger.error(f"PDF not found: {identifier}")
            entries.append(PreviewEntry(identifier=identifier, status=PreviewStatus.NOT_FOUND,
                                        variants=variants, message="PDF not found"))
            continue

        counter += 1
        names = ", ".join(match.name for match in matches)
        if len(matches) > 1:
            logger.warning(f"Multiple PDFs for invoice {identifier}: {names}")
            status, message = PreviewStatus.AMBIGUOUS, f"Multiple PDFs found: {names}"
        else:
            status, message = PreviewStatus.MATCHED, f"PDF found: {names}"

        entries.append(PreviewEntry(
            identifier=identifier,
            status=status,
            variants=variants,
            candidates=matches,
            planned_name=sequential_name(counter, matches[0].name),
            message=message,
        ))

    return entries
