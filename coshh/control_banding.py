"""
COSHH Essentials control banding.
Resolves hazard group, quantity group and physical characteristics into a
control band, and the band into control measures and PPE guidance.
"""
import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from coshh.errors import InvalidArgument, NotFound, RangeViolation
from coshh.knowledge import (
    HAZARD_GROUPS,
    PHYSICAL_GROUPS,
    QUANTITY_GROUPS,
    ControlBandProfile,
    KnowledgeBase,
    default_knowledge_base,
)
from coshh.likelihood import canonical_unit, validate_quantity

logger = logging.getLogger(__name__)

SPECIALIST_GROUPS = ('S', 'E')
SPECIALIST_BAND = 'S'

PHYSICAL_STATES = ('solid', 'liquid', 'gas')
DUSTINESS_LEVELS = {'low': 'Low', 'medium': 'Medium', 'high': 'High'}

# Thousandths of a gram or millilitre per unit
MILLI_PER_UNIT = {
    'µg': 1 / 1000,
    'mg': 1,
    'mL': 1,
    'µL': 1 / 1000,
    'g': 1000,
    'L': 1000,
    'kg': 1000 * 1000,
}
MEDIUM_QUANTITY_FROM = 1000
LARGE_QUANTITY_FROM = 1000 * 1000

RISK_LEVELS = ((10, 'Low'), (20, 'Medium'), (30, 'High'))


@dataclass(frozen=True)
class RiskRating:
    score: float
    level: str

    def to_dict(self) -> Dict[str, Any]:
        return {'score': self.score, 'level': self.level}


def match_choice(value: Any, choices: Sequence[str], label: str) -> str:
    """Case-insensitive match of value against a fixed set of names"""
    if not isinstance(value, str):
        raise InvalidArgument(f"{label} must be a string, got {type(value).__name__}")
    wanted = value.strip().lower()
    for choice in choices:
        if choice.lower() == wanted:
            return choice
    raise InvalidArgument(f"Unknown {label} {value!r}, expected one of {', '.join(choices)}")


def _real(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgument(f"{label} must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InvalidArgument(f"{label} must be finite, got {value}")
    return float(value)


class ControlBander:
    def __init__(self, knowledge: Optional[KnowledgeBase] = None):
        self.knowledge = knowledge or default_knowledge_base()

    def resolve_control_band(self, hazard_group: str, quantity_group: str,
                             physical_group: str) -> str:
        """
        Control band (1-4 or S) for a hazard group, quantity group and
        physical characteristics group.

        Groups S and E always need specialist advice, whatever the quantity
        or physical form. Groups A-D are read from the band matrix.
        """
        group = match_choice(hazard_group, HAZARD_GROUPS, 'hazard group')
        if group in SPECIALIST_GROUPS:
            logger.debug("Hazard group %s forces band %s", group, SPECIALIST_BAND)
            return SPECIALIST_BAND

        quantity = match_choice(quantity_group, QUANTITY_GROUPS, 'quantity group')
        physical = match_choice(physical_group, PHYSICAL_GROUPS, 'physical characteristics group')

        band = self.knowledge.band_matrix[group][quantity][PHYSICAL_GROUPS.index(physical)]
        logger.debug("Band %s for group=%s quantity=%s physical=%s", band, group, quantity, physical)
        return band

    def get_control_band_profile(self, band: Any) -> ControlBandProfile:
        """Control measures and PPE text for a band"""
        if isinstance(band, int) and not isinstance(band, bool):
            key = str(band)
        elif isinstance(band, str):
            key = band.strip().upper()
        else:
            raise NotFound(f"Unknown control band: {band!r}")

        profile = self.knowledge.control_bands.get(key)
        if profile is None:
            raise NotFound(f"Unknown control band: {band!r}")
        return profile

    def classify_quantity_group(self, quantity: float, unit: str) -> str:
        """Small (g/mL), Medium (kg/L) or Large (tonnes/m3) quantity group"""
        amount = validate_quantity(quantity) * MILLI_PER_UNIT[canonical_unit(unit)] / 1000
        if amount < MEDIUM_QUANTITY_FROM:
            return 'Small'
        elif amount < LARGE_QUANTITY_FROM:
            return 'Medium'
        return 'Large'

    def classify_physical_characteristics(self, physical_state: str,
                                          dustiness: Optional[str] = None,
                                          boiling_point_c: Optional[float] = None,
                                          operating_temp_c: float = 20.0) -> str:
        """
        Physical characteristics group (Low, Medium or High).

        Solids are graded by dustiness and liquids by volatility, comparing
        the boiling point with the operating temperature. Gases are always
        High. Missing dustiness or boiling point is graded High.
        """
        state = match_choice(physical_state, PHYSICAL_STATES, 'physical state')

        if state == 'gas':
            return 'High'

        if state == 'solid':
            if dustiness is None:
                return 'High'
            level = match_choice(dustiness, tuple(DUSTINESS_LEVELS), 'dustiness')
            return DUSTINESS_LEVELS[level]

        if boiling_point_c is None:
            return 'High'
        boiling_point = _real(boiling_point_c, 'boiling point')
        temperature = _real(operating_temp_c, 'operating temperature')
        if boiling_point < -273.15 or temperature < -273.15:
            raise RangeViolation("Temperatures must be above absolute zero")

        if boiling_point < 2 * temperature + 10:
            return 'High'
        elif boiling_point > 5 * temperature + 50:
            return 'Low'
        return 'Medium'

    def rate_risk(self, severity: int, likelihood: float) -> RiskRating:
        """Overall risk rating from severity times likelihood"""
        if isinstance(severity, bool) or not isinstance(severity, numbers.Integral):
            raise InvalidArgument(f"severity must be an integer, got {type(severity).__name__}")
        if not 1 <= severity <= 5:
            raise RangeViolation(f"severity must be within [1, 5], got {severity}")
        likelihood = _real(likelihood, 'likelihood')
        if not 0 <= likelihood <= 10:
            raise RangeViolation(f"likelihood must be within [0, 10], got {likelihood}")

        score = round(severity * likelihood, 2)
        for upper, level in RISK_LEVELS:
            if score < upper:
                return RiskRating(score=score, level=level)
        return RiskRating(score=score, level='Very High')
