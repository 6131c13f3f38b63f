# src/paleosplice/suggest/accept.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..chronology.tiepoints import AgeModel, TiePoint
from ..errors import AgeUnavailable
from ..utils.logging import get_logger
from .base import TiePointSuggestion

log = get_logger(__name__)


@dataclass(frozen=True)
class AcceptedSuggestion:
    age: float
    age_from: TiePoint
    reference_model: AgeModel
    target_model: AgeModel
    added: Tuple[TiePoint, ...]


def accept_suggestion(
    suggestion: TiePointSuggestion,
    reference_model: AgeModel,
    target_model: AgeModel,
    *,
    depth_tolerance: float = 1.0,
) -> AcceptedSuggestion:
    """
    Turn a depth correspondence into tie points by transferring an existing age.

    The age comes from a tie point already in the reference model strictly closer
    than `depth_tolerance` to ref_position, else from one in the target model near
    target_position. Both depths then carry that age; only the side(s) without a
    nearby tie point receive a new one. Correlation never creates an age on its
    own, so with no nearby tie point on either side this raises AgeUnavailable.
    """
    if reference_model.section_id == target_model.section_id:
        raise ValueError("Reference and target must be different sections.")

    tol = float(depth_tolerance)
    ref_tp = reference_model.nearest(suggestion.ref_position, tolerance=tol)
    tgt_tp = target_model.nearest(suggestion.target_position, tolerance=tol)

    source = ref_tp if ref_tp is not None else tgt_tp
    if source is None:
        raise AgeUnavailable(
            f"No tie point within {tol:g} of depth {suggestion.ref_position:g} in section "
            f"{reference_model.section_id} or {suggestion.target_position:g} in section "
            f"{target_model.section_id}; add an age there first."
        )

    added = []
    ref_model = reference_model
    tgt_model = target_model
    if ref_tp is None:
        tp = TiePoint.create(reference_model.section_id, suggestion.ref_position, source.age, prefix="corr")
        ref_model = ref_model.add(tp)
        added.append(tp)
    if tgt_tp is None:
        tp = TiePoint.create(target_model.section_id, suggestion.target_position, source.age, prefix="corr")
        tgt_model = tgt_model.add(tp)
        added.append(tp)

    log.info(
        "Accepted suggestion %g <-> %g: age %g ka from %s, %d tie point(s) added",
        suggestion.ref_position,
        suggestion.target_position,
        source.age,
        source.id,
        len(added),
    )
    return AcceptedSuggestion(
        age=source.age,
        age_from=source,
        reference_model=ref_model,
        target_model=tgt_model,
        added=tuple(added),
    )
