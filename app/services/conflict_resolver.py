"""
app/services/conflict_resolver.py

Collapses facts sharing a source-row hash to the most confident one.
"""

from __future__ import annotations

from collections.abc import Sequence

from app.domain.facts import FactIndicatorValue


class ConflictResolver:
    def resolve(self, facts: Sequence[FactIndicatorValue]) -> list[FactIndicatorValue]:
        resolved, _ = self.resolve_with_stats(facts)
        return resolved

    def resolve_with_stats(self, facts: Sequence[FactIndicatorValue]) -> tuple[list[FactIndicatorValue], int]:
        """
        Return one fact per hash in first-appearance order, and how many
        facts were dropped. Equal confidence keeps the earlier fact.
        """

        winners: dict[str, FactIndicatorValue] = {}
        for fact in facts:
            current = winners.get(fact.source_row_hash)
            if current is None or fact.confidence_score > current.confidence_score:
                winners[fact.source_row_hash] = fact
        return list(winners.values()), len(facts) - len(winners)
