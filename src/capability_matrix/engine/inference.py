"""Inference from field evidence alone."""

from __future__ import annotations

from capability_matrix.engine.models import EvidenceBucket, ThreeState, Verdict

# (has supporting, has refuting) -> inferred verdict
INFERENCE_TABLE: dict[tuple[bool, bool], Verdict] = {
    (False, False): Verdict(ThreeState.UNKNOWN, has_conflict=False),
    (True, False): Verdict(ThreeState.SUPPORTED, has_conflict=False),
    (False, True): Verdict(ThreeState.UNSUPPORTED, has_conflict=False),
    (True, True): Verdict(ThreeState.UNKNOWN, has_conflict=True),
}


def infer_state(bucket: EvidenceBucket) -> Verdict:
    """Infer a state from one bucket. Counts on either side do not matter."""
    return INFERENCE_TABLE[(bool(bucket.supporting), bool(bucket.refuting))]
