"""
Exception types raised by the recommendation pipeline.

``MissingReferenceError`` is the per-pair failure: it aborts the computation
for one (location, component) pair, and the runner logs it and moves on.
Anything else escaping a pair aborts the whole run.

``CatalogValidationError`` is raised by the seed loader and importers when an
input file references ids the catalog does not know.
"""

from __future__ import annotations

# ── Custom exceptions ─────────────────────────────────────────────────────────


class MissingReferenceError(RuntimeError):
    """Raised when a required reference record or forecast is absent.

    Attributes:
        kind:   What was missing, e.g. ``"models"``, ``"suppliers"``, ``"forecast"``.
        detail: Human-readable identifier of the lookup that failed.
    """

    def __init__(self, kind: str, detail: str) -> None:
        self.kind   = kind
        self.detail = detail
        super().__init__(f"Missing {kind}: {detail}")


class CatalogValidationError(ValueError):
    """Raised when seed or import data is inconsistent with the catalog.

    Attributes:
        errors: Individual validation messages (first ones shown in ``str()``).
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        max_shown = 10
        detail = "\n".join(f"  {msg}" for msg in self.errors[:max_shown])
        suffix = (
            f"\n  … and {len(self.errors) - max_shown} more"
            if len(self.errors) > max_shown else ""
        )
        super().__init__(f"{len(self.errors)} validation error(s):\n{detail}{suffix}")
