"""Deterministic scoring rules shared by assets, risk assessments and compliance.

Every stored ``criticality`` / ``risk_level`` and every compliance percentage
in the system is derived from the functions in this module, so stored values
can always be recomputed from their raw inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

CRITICALITY_CRITICAL = "critical"
CRITICALITY_HIGH = "high"
CRITICALITY_MEDIUM = "medium"
CRITICALITY_LOW = "low"

RISK_CRITICAL = "critical"
RISK_HIGH = "high"
RISK_MEDIUM = "medium"
RISK_LOW = "low"
RISK_NEGLIGIBLE = "negligible"

RATING_MIN = 1
RATING_MAX = 5

CIA_WEIGHTS = (Decimal("0.40"), Decimal("0.35"), Decimal("0.25"))

# Lower bounds, checked top-down.
CRITICALITY_THRESHOLDS: Tuple[Tuple[Decimal, str], ...] = (
    (Decimal("4"), CRITICALITY_CRITICAL),
    (Decimal("3"), CRITICALITY_HIGH),
    (Decimal("2"), CRITICALITY_MEDIUM),
)

RISK_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (20, RISK_CRITICAL),
    (12, RISK_HIGH),
    (6, RISK_MEDIUM),
    (2, RISK_LOW),
)

RISK_LEVELS = (RISK_CRITICAL, RISK_HIGH, RISK_MEDIUM, RISK_LOW, RISK_NEGLIGIBLE)
CRITICALITY_LEVELS = (CRITICALITY_CRITICAL, CRITICALITY_HIGH, CRITICALITY_MEDIUM, CRITICALITY_LOW)


@dataclass(frozen=True)
class Criticality:
    score: float
    level: str

    @property
    def decimal_score(self) -> Decimal:
        return Decimal(str(self.score)).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class RiskRating:
    score: int
    level: str


@dataclass(frozen=True)
class MaturityLevel:
    key: str
    label: str
    description: str
    min_score: int
    max_score: Optional[int]

    def contains(self, score: float) -> bool:
        if score < self.min_score:
            return False
        return self.max_score is None or score < self.max_score


MATURITY_LEVELS: Tuple[MaturityLevel, ...] = (
    MaturityLevel("initial", "Initial", "Ad hoc, unpredictable processes", 0, 20),
    MaturityLevel("developing", "Developing", "Basic controls being established", 20, 40),
    MaturityLevel("defined", "Defined", "Documented and standardized", 40, 60),
    MaturityLevel("managed", "Managed", "Measured and controlled", 60, 80),
    MaturityLevel("optimizing", "Optimizing", "Continuous improvement", 80, None),
)


def criticality_score(confidentiality: int, integrity: int, availability: int) -> Decimal:
    weights = zip(CIA_WEIGHTS, (confidentiality, integrity, availability))
    return sum((weight * Decimal(value) for weight, value in weights), Decimal("0"))


def criticality_level(score) -> str:
    value = Decimal(str(score))
    for threshold, level in CRITICALITY_THRESHOLDS:
        if value >= threshold:
            return level
    return CRITICALITY_LOW


def criticality(confidentiality: int, integrity: int, availability: int) -> Criticality:
    """Weighted CIA criticality. Inputs are assumed to be validated to [1, 5]."""
    score = criticality_score(confidentiality, integrity, availability)
    return Criticality(score=float(score), level=criticality_level(score))


def risk_level_for_score(score: int) -> str:
    for threshold, level in RISK_THRESHOLDS:
        if score >= threshold:
            return level
    return RISK_NEGLIGIBLE


def risk_rating(likelihood: int, impact: int) -> RiskRating:
    score = likelihood * impact
    return RiskRating(score=score, level=risk_level_for_score(score))


def round_half_up(numerator: int, denominator: int) -> int:
    """Round a non-negative fraction to the nearest integer, halves going up."""
    return (2 * numerator + denominator) // (2 * denominator)


def compliance_score(*, compliant: int, partial: int, not_applicable: int, total: int) -> int:
    """Percentage score where a partial control counts half.

    Controls marked not applicable leave the denominator; unassessed controls
    stay in it. Returns 0 when nothing applicable remains.
    """
    effective_total = total - not_applicable
    if effective_total <= 0:
        return 0
    # 100 * (compliant + partial / 2) / effective, kept in integers.
    return round_half_up(100 * (2 * compliant + partial), 2 * effective_total)


def coverage(assessed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * assessed, total)


def maturity_level(score: float) -> MaturityLevel:
    for level in MATURITY_LEVELS:
        if level.contains(score):
            return level
    return MATURITY_LEVELS[0]


def risk_matrix(pairs: Iterable[Tuple[int, int]]) -> List[List[dict]]:
    """Count (likelihood, impact) pairs into a 5x5 grid.

    Rows run from impact 5 down to 1 and columns from likelihood 1 to 5, the
    orientation auditors read a heat map in.
    """
    counts = {}
    for likelihood, impact in pairs:
        counts[(likelihood, impact)] = counts.get((likelihood, impact), 0) + 1

    grid: List[List[dict]] = []
    for impact in range(RATING_MAX, RATING_MIN - 1, -1):
        row = []
        for likelihood in range(RATING_MIN, RATING_MAX + 1):
            rating = risk_rating(likelihood, impact)
            row.append(
                {
                    "likelihood": likelihood,
                    "impact": impact,
                    "score": rating.score,
                    "level": rating.level,
                    "count": counts.get((likelihood, impact), 0),
                }
            )
        grid.append(row)
    return grid
