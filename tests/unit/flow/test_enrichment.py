"""Unit tests for part-based enrichment."""

from __future__ import annotations

from dataclasses import dataclass, replace

from flow.enrichment import Enricher, enrich_targets


@dataclass(frozen=True)
class _Customer:
    id: str
    orders: int = 0


def _order_enricher(orders: list[dict[str, str]]) -> Enricher:
    return Enricher(
        output_type_id="orders",
        source=lambda: orders,
        find=lambda target, parts: [part for part in parts if part["customer"] == target.id],
        enrich=lambda part, target: replace(target, orders=target.orders + 1),
    )


def test_enrich_targets_folds_matching_parts() -> None:
    """Every matching part should be folded into its target."""
    orders = [{"customer": "a"}, {"customer": "a"}, {"customer": "b"}]

    enriched, log = enrich_targets([_Customer("a"), _Customer("c")], [_order_enricher(orders)])

    assert (
        enriched == (_Customer("a", 2), _Customer("c", 0))
        and log.entries[0].entities_enriched == 2
        and log.target_type_id == "_Customer"
        and log.errors == ()
    )


def test_enrich_targets_records_failures_and_keeps_target() -> None:
    """A failing enrich call should be logged and leave the target unchanged."""

    def _fail(part: object, target: _Customer) -> _Customer:
        raise KeyError("missing")

    enricher = Enricher(
        output_type_id="broken",
        source=lambda: [{"customer": "a"}],
        find=lambda target, parts: parts,
        enrich=_fail,
    )

    enriched, log = enrich_targets([_Customer("a")], [enricher])

    assert (
        enriched == (_Customer("a"),)
        and len(log.errors) == 1
        and log.entries[0].entities_enriched == 0
    )
