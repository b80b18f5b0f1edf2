"""Enrichment of produced records from related part sources.

An enricher loads a part source once, finds the parts matching each
target, and folds them into the target. Targets are immutable, so the
enriched sequence is returned alongside an enrichment log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from core.logging_config import get_logger
from core.types import EnrichmentLog, EnrichmentLogEntry, ErrorEvent, utc_now

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class Enricher:
    """One part source able to enrich whole targets.

    Attributes:
        output_type_id: Identifier of the enrichment recorded in logs.
        source: Returns the part records, re-read on every run.
        find: Returns the parts matching one target.
        enrich: Returns the target enriched from one part.
    """

    output_type_id: str
    source: Callable[[], Iterable[Any]]
    find: Callable[[Any, Sequence[Any]], Iterable[Any]]
    enrich: Callable[[Any, Any], Any]


def enrich_targets(
    targets: Sequence[Any],
    enrichers: Sequence[Enricher],
    target_type_id: str | None = None,
) -> tuple[tuple[Any, ...], EnrichmentLog]:
    """Apply every enricher to every target in order.

    A failing find or enrich call is logged against the enrichment, the
    target keeps its previous value, and the run moves to the next target.

    Args:
        targets: Whole records to enrich.
        enrichers: Enrichers applied in sequence.
        target_type_id: Log label; defaults to the first target's type name.

    Returns:
        Pair of enriched targets and the enrichment log.
    """
    started_at = utc_now()
    current = list(targets)
    entries: list[EnrichmentLogEntry] = []
    errors: list[ErrorEvent] = []
    for enricher in enrichers:
        parts = list(enricher.source())
        enriched_count = 0
        for index, target in enumerate(current):
            try:
                updated = target
                applied = 0
                for part in enricher.find(target, parts):
                    updated = enricher.enrich(part, updated)
                    applied += 1
            except Exception as error:
                errors.append(
                    ErrorEvent(
                        type(error).__name__,
                        f"Failed to enrich {target!r} with '{enricher.output_type_id}': {error}",
                    )
                )
                continue
            current[index] = updated
            enriched_count += applied
        entries.append(
            EnrichmentLogEntry(
                output_type_id=enricher.output_type_id,
                entities_enriched=enriched_count,
            )
        )
        _LOGGER.info(
            "enrichment_applied",
            output_type_id=enricher.output_type_id,
            part_count=len(parts),
            entities_enriched=enriched_count,
        )
    log = EnrichmentLog(
        target_type_id=target_type_id or _type_name(current),
        started_at=started_at,
        completed_at=utc_now(),
        entries=tuple(entries),
        errors=tuple(errors),
    )
    if errors:
        _LOGGER.warning("enrichment_errors", error_count=len(errors))
    return tuple(current), log


def _type_name(targets: Sequence[Any]) -> str:
    return type(targets[0]).__name__ if targets else "unknown"
