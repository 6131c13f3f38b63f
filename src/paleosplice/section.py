# src/paleosplice/section.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .chronology.calibrate import CalibrationConfig, calibrate
from .chronology.tiepoints import AgeModel, TiePoint
from .errors import InvalidSeries
from .series import Axis, ProxySeries


@dataclass(frozen=True)
class Section:
    """
    One independently measured segment of a core: its depth-indexed proxy
    series plus the age model snapshot currently attached to it.

    Read-only to this package; edits return new Section objects.
    """

    id: str
    series: ProxySeries
    name: str = ""
    age_model: Optional[AgeModel] = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidSeries("Section.id must be a non-empty string.")
        if self.series.axis is not Axis.DEPTH:
            raise InvalidSeries(f"Section {self.id} series must be depth-indexed.")
        if self.series.section_id != self.id:
            object.__setattr__(self, "series", replace(self.series, section_id=self.id))
        if self.age_model is None:
            object.__setattr__(self, "age_model", AgeModel.empty(self.id))
        elif self.age_model.section_id != self.id:
            raise ValueError(f"Age model for {self.age_model.section_id!r} attached to section {self.id!r}.")
        if not self.name:
            object.__setattr__(self, "name", self.id)

    @property
    def tie_points(self) -> tuple:
        return self.age_model.tie_points  # type: ignore[union-attr]

    @property
    def is_calibratable(self) -> bool:
        return bool(self.age_model and self.age_model.can_calibrate)

    def with_age_model(self, model: AgeModel) -> "Section":
        return replace(self, age_model=model)

    def with_tie_points(self, points: Iterable[TiePoint]) -> "Section":
        """Attach the points of a shared list that reference this section (new snapshot)."""
        prev = self.age_model.version if self.age_model is not None else 0
        return replace(self, age_model=AgeModel.for_section(self.id, points, version=prev + 1))

    def calibrated(self, *, cfg: CalibrationConfig = CalibrationConfig()) -> ProxySeries:
        return calibrate(self.series, self.age_model, cfg=cfg)  # type: ignore[arg-type]
