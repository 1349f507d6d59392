"""Fusion of declared configuration with inferred evidence."""

from __future__ import annotations

from capability_matrix.engine.models import ThreeState, Verdict


def fuse(manual: ThreeState, inferred: ThreeState, inferred_conflict: bool) -> Verdict:
    """Resolve one capability value.

    Precedence: contradictory evidence > clean evidence > manual > unknown.
    Evidence overrides the declared state, but a disagreement between the
    two is flagged as a conflict.
    """
    if inferred_conflict:
        return Verdict(ThreeState.UNKNOWN, has_conflict=True)

    if inferred != ThreeState.UNKNOWN:
        disagrees = manual != ThreeState.UNKNOWN and manual != inferred
        return Verdict(inferred, has_conflict=disagrees)

    if manual != ThreeState.UNKNOWN:
        return Verdict(manual, has_conflict=False)

    return Verdict(ThreeState.UNKNOWN, has_conflict=False)
