from dataclasses import dataclass
from typing import Dict, Tuple


class UnknownRubric(ValueError):
    pass


class RubricMismatch(ValueError):
    pass


@dataclass(frozen=True)
class Rubric:
    version: str
    criteria: Tuple[str, ...]
    min_score: int
    max_score: int

    @property
    def max_total(self) -> int:
        return self.max_score * len(self.criteria)


STANDARD_RUBRIC = Rubric(
    version="standard",
    criteria=("problem_understanding", "innovation", "value_impact", "feasibility", "presentation_teamwork"),
    min_score=1,
    max_score=20,
)

# Earlier four-criterion sheet, kept for events created before the 100 point rubric.
CLASSIC_RUBRIC = Rubric(
    version="classic",
    criteria=("innovation", "presentation", "feasibility", "impact"),
    min_score=1,
    max_score=10,
)

RUBRICS: Dict[str, Rubric] = {
    STANDARD_RUBRIC.version: STANDARD_RUBRIC,
    CLASSIC_RUBRIC.version: CLASSIC_RUBRIC,
}


def get_rubric(version: str) -> Rubric:
    rubric = RUBRICS.get(str(version or "").strip().lower())
    if rubric is None:
        raise UnknownRubric(f"Unknown rubric version: {version!r}")
    return rubric
