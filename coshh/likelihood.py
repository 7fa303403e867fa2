"""
Exposure likelihood scoring for COSHH assessments.
Combines procedure characteristics, quantity, frequency and duration into a
0-10 likelihood score.
"""
import logging
import math
import numbers
from typing import Any, Optional

from coshh.errors import InvalidArgument, RangeViolation
from coshh.knowledge import KnowledgeBase, ProcedureProfile, default_knowledge_base

logger = logging.getLogger(__name__)

VALID_UNITS = ('µg', 'mg', 'g', 'kg', 'µL', 'mL', 'L')

UNIT_ALIASES = {
    'ug': 'µg',
    'μg': 'µg',  # Greek mu
    'uL': 'µL',
    'ul': 'µL',
    'μL': 'µL',
    'ml': 'mL',
    'l': 'L',
}

# Multiplier onto the shared mg/mL scale, micro units are divided instead
UNIT_SCALE = {
    'mg': 1,
    'mL': 1,
    'g': 1000,
    'L': 1000,
    'kg': 1000,
}
MICRO_UNITS = ('µg', 'µL')

FREQUENCY_SCORES = {'multiple_daily': 3, 'daily': 2, 'weekly': 1}
DURATION_SCORES = {'very_long': 3, 'long': 2, 'medium': 1}

NO_PROCEDURE_BASE = 1.5
MAX_LIKELIHOOD = 10.0


def canonical_unit(unit: Any) -> str:
    """Return the canonical spelling of a supported unit"""
    if not isinstance(unit, str):
        raise InvalidArgument(f"unit must be a string, got {type(unit).__name__}")
    unit = unit.strip()
    unit = UNIT_ALIASES.get(unit, unit)
    if unit not in VALID_UNITS:
        raise InvalidArgument(f"Unsupported unit {unit!r}, expected one of {', '.join(VALID_UNITS)}")
    return unit


def validate_quantity(quantity: Any) -> float:
    """Check that a quantity is a finite, non-negative real number"""
    if isinstance(quantity, bool) or not isinstance(quantity, numbers.Real):
        raise InvalidArgument(f"quantity must be a number, got {type(quantity).__name__}")
    if not math.isfinite(quantity):
        raise InvalidArgument(f"quantity must be finite, got {quantity}")
    if quantity < 0:
        raise RangeViolation(f"quantity must not be negative, got {quantity}")
    return float(quantity)


def likelihood_band(score: float) -> str:
    """Readable interpretation of a likelihood score"""
    if score < 3:
        return 'Very Low'
    elif score < 6:
        return 'Low to Moderate'
    elif score < 9:
        return 'High'
    return 'Very High'


class LikelihoodCalculator:
    def __init__(self, knowledge: Optional[KnowledgeBase] = None):
        self.knowledge = knowledge or default_knowledge_base()

    def normalize_quantity(self, quantity: float, unit: str) -> float:
        """Quantity on the shared scale where 1 mg and 1 mL are both 1"""
        quantity = validate_quantity(quantity)
        unit = canonical_unit(unit)
        if unit in MICRO_UNITS:
            return quantity / 1000
        return quantity * UNIT_SCALE[unit]

    def quantity_score(self, normalized_quantity: float) -> int:
        if normalized_quantity > 500:
            return 3
        elif normalized_quantity > 50:
            return 2
        elif normalized_quantity > 1:
            return 1
        return 0

    def frequency_score(self, frequency: str) -> int:
        if not isinstance(frequency, str):
            raise InvalidArgument(f"frequency must be a string, got {type(frequency).__name__}")
        return FREQUENCY_SCORES.get(frequency.strip().lower(), 0)

    def duration_score(self, duration: str) -> int:
        if not isinstance(duration, str):
            raise InvalidArgument(f"duration must be a string, got {type(duration).__name__}")
        return DURATION_SCORES.get(duration.strip().lower(), 0)

    def base_score(self, procedure: Optional[ProcedureProfile]) -> float:
        if procedure is None:
            return NO_PROCEDURE_BASE
        if not isinstance(procedure, ProcedureProfile):
            raise InvalidArgument(
                f"procedure must be a ProcedureProfile or None, got {type(procedure).__name__}")
        return procedure.exposure_factor * 3 + procedure.aerosol_factor * 2

    def calculate_likelihood(self, procedure: Optional[ProcedureProfile], quantity: float,
                             unit: str, frequency: str = '', duration: str = '') -> float:
        """
        Likelihood score (0-10) for a task.

        Procedure base, quantity, frequency and duration scores are added
        independently and the total is capped at 10. Unrecognised frequency
        or duration values score 0.
        """
        base = self.base_score(procedure)
        normalized = self.normalize_quantity(quantity, unit)
        quantity_points = self.quantity_score(normalized)
        frequency_points = self.frequency_score(frequency)
        duration_points = self.duration_score(duration)

        total = base + quantity_points + frequency_points + duration_points
        likelihood = min(MAX_LIKELIHOOD, float(total))

        logger.debug(
            "Likelihood %.2f (base=%.2f, quantity=%s [%s normalized], frequency=%s, "
            "duration=%s, uncapped=%.2f)",
            likelihood, base, quantity_points, normalized, frequency_points,
            duration_points, total)
        return likelihood
