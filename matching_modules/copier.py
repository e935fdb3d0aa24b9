"""
Sequentially numbered copy of matched PDFs into a destination folder.
"""

import os
import logging
from typing import Iterable, List, Optional

from .config import COPY_DESTINATION_MISSING, COPY_SOURCE_MISSING, SEQUENTIAL_NAME_FORMAT
from .models import CandidateFile, Copied, CopyOutcome, Failed, Found

logger = logging.getLogger(__name__)


def sequential_name(number: int, filename: str) -> str:
    return SEQUENTIAL_NAME_FORMAT.format(number=number, filename=filename)


def copy_file(source, candidate: CandidateFile, destination_path: str) -> Optional[str]:
    """
    Copy one file, returning None on success or a readable failure reason.
    """
    try:
        source.stat(candidate)
    except OSError:
        return COPY_SOURCE_MISSING

    if not os.path.isdir(os.path.dirname(destination_path)):
        return COPY_DESTINATION_MISSING

    try:
        source.copy_to(candidate, destination_path)
    except OSError as e:
        return str(e)
    return None


def copy_resolved(found: Iterable[Found], destination_folder: str, source) -> List[CopyOutcome]:
    """
    Copy matched files into ``destination_folder`` as "{n}- {filename}".

    Files are deduplicated by source path and copied in resolution order.
    Numbering starts at 1 and only advances on a successful copy, so failed
    files never leave a gap in the sequence.

    Args:
        found: Matches in resolution order
        destination_folder: Existing folder receiving the copies
        source: Candidate source the matches came from

    Returns:
        One outcome per distinct source file
    """
    outcomes: List[CopyOutcome] = []
    seen_paths = set()
    next_number = 1

    for match in found:
        candidate = match.file
        if candidate.path in seen_paths:
            logger.debug(f"Skipping duplicate match for {candidate.name} ({match.identifier})")
            continue
        seen_paths.add(candidate.path)

        target_name = sequential_name(next_number, candidate.name)
        target_path = os.path.join(destination_folder, target_name)
        error = copy_file(source, candidate, target_path)

        if error is None:
            outcomes.append(Copied(sequence=next_number, name=target_name, source=candidate))
            logger.info(f"Copied '{candidate.name}' -> '{target_name}'")
            next_number += 1
        else:
            outcomes.append(Failed(filename=candidate.name, reason=error))
            logger.error(f"Failed to copy {candidate.name}: {error}")

    return outcomes
