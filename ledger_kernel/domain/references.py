"""
Reference correlation between documents, journal entries, movements and voids.

Canonical scheme:
    - A posted document writes ``reference = document.number`` verbatim on its
      journal entry and every inventory movement.
    - A void writes ``reference = "VOID-" + <stored original reference>``,
      whichever alias spelling the caller used to name the document.
    - Lookups of originals also accept each legacy alias prefix (default
      ``INV-``), so ``1001`` matches ``1001`` and ``INV-1001``; and
      ``INV-1001`` matches ``1001`` as well.
    - The void idempotency check matches ``VOID-`` plus any of those
      candidates.

This module is the only place that knows how references are spelled.
"""

from dataclasses import dataclass

VOID_PREFIX = "VOID-"
DEFAULT_LEGACY_ALIASES: tuple[str, ...] = ("INV-",)


def void_reference(original_reference: str) -> str:
    """``1001`` -> ``VOID-1001``."""
    return f"{VOID_PREFIX}{original_reference}"


def is_void_reference(reference: str) -> bool:
    return reference.startswith(VOID_PREFIX)


def _dedupe(values: list[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)


@dataclass(frozen=True)
class ReferenceScheme:
    """Reference matching rules, parameterised by the legacy alias prefixes."""

    legacy_aliases: tuple[str, ...] = DEFAULT_LEGACY_ALIASES

    def bare(self, reference: str) -> str:
        """Strip the first matching legacy alias prefix, if any."""
        for alias in self.legacy_aliases:
            if alias and reference.startswith(alias) and len(reference) > len(alias):
                return reference[len(alias):]
        return reference

    def original_candidates(self, reference: str) -> tuple[str, ...]:
        """All spellings under which the original document may have been posted."""
        base = self.bare(reference)
        candidates = [reference, base]
        candidates.extend(f"{alias}{base}" for alias in self.legacy_aliases if alias)
        return _dedupe(candidates)

    def void_candidates(self, reference: str) -> tuple[str, ...]:
        """All spellings a previous void of ``reference`` may have used."""
        return tuple(void_reference(c) for c in self.original_candidates(reference))
