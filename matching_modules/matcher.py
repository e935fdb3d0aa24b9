"""
Resolution of invoice numbers against a candidate index or a plain candidate list.
"""

import logging
from typing import Iterable, List, Union

from .index import CandidateIndex
from .models import CandidateFile, Found, Ignored, MatchOutcome, NotFound, SearchResult
from .utils import filename_matches, generate_variants

logger = logging.getLogger(__name__)


def resolve(identifier: str, index: CandidateIndex) -> MatchOutcome:
    """
    Resolve one invoice number to a single file.

    Variants are tried in priority order; the first bucket whose first file
    is still accessible wins. A failed stat moves on to the next variant.
    """
    variants = generate_variants(identifier)
    if not variants:
        logger.warning(f"Invoice ignored (number too short): {identifier}")
        return Ignored(identifier)

    logger.debug(f"Variants for {identifier}: {', '.join(variants)}")

    for variant in variants:
        candidates = index.lookup(variant)
        if not candidates:
            continue

        candidate = candidates[0]
        try:
            size = index.source.stat(candidate)
        except OSError as e:
            logger.error(f"Error reading stat of {candidate.path}: {e}")
            continue

        return Found(
            identifier=identifier,
            file=CandidateFile(name=candidate.name, path=candidate.path, size=size),
            variant=variant,
        )

    return NotFound(identifier)


def resolve_all(identifier: str,
                candidates: Union[CandidateIndex, Iterable[CandidateFile]]) -> List[CandidateFile]:
    """
    Return every candidate file that could correspond to ``identifier``.

    Each file is tested against all variants and included once. Used to flag
    ambiguous numbers instead of silently picking one file.
    """
    variants = generate_variants(identifier)
    if not variants:
        return []

    files = candidates.files if isinstance(candidates, CandidateIndex) else candidates
    return [candidate for candidate in files if filename_matches(variants, candidate.name)]


def search_batch(identifiers: Iterable[str], index: CandidateIndex) -> SearchResult:
    """
    Resolve a list of invoice numbers one by one, in input order.

    Repeated numbers (exact string equality) are resolved once. Two different
    numbers resolving to the same file both appear in ``found``.
    """
    result = SearchResult()

    for identifier in dict.fromkeys(identifiers):
        outcome = resolve(identifier, index)
        if isinstance(outcome, Found):
            result.found.append(outcome)
        elif isinstance(outcome, Ignored):
            result.ignored.append(identifier)
        else:
            result.not_found.append(identifier)

    logger.info(
        f"[SEARCH] Found: {len(result.found)} | Not found: {len(result.not_found)} "
        f"| Ignored: {len(result.ignored)}"
    )
    return result
