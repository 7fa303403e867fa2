"""
COSHH risk assessment orchestration.
Runs the hazard, likelihood and control banding calculators for one substance
and task, returning a plain record for report templates.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from coshh.control_banding import ControlBander, RiskRating, match_choice
from coshh.errors import InvalidArgument
from coshh.extractors import HIGH, HazardFacts
from coshh.hazard_classifier import HazardClassifier, normalize_phrases
from coshh.knowledge import (
    QUANTITY_GROUPS,
    ControlBandProfile,
    KnowledgeBase,
    ProcedureProfile,
    default_knowledge_base,
)
from coshh.likelihood import LikelihoodCalculator, likelihood_band

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskAssessment:
    """Outcome of a COSHH assessment for one substance and task"""
    h_phrases: Tuple[str, ...]
    signal_word: str
    severity: int
    likelihood: float
    likelihood_band: str
    hazard_group: str
    quantity_group: str
    physical_group: str
    control_band: str
    control_profile: ControlBandProfile
    risk: RiskRating
    hazard_categories: Dict[str, List[str]]
    hazard_classes: Tuple[str, ...]
    pictograms: Tuple[str, ...]
    exposure_routes: Tuple[str, ...]
    procedure: Optional[ProcedureProfile] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'h_phrases': list(self.h_phrases),
            'signal_word': self.signal_word,
            'severity': self.severity,
            'likelihood': self.likelihood,
            'likelihood_band': self.likelihood_band,
            'hazard_group': self.hazard_group,
            'quantity_group': self.quantity_group,
            'physical_group': self.physical_group,
            'control_band': self.control_band,
            'control_measures': self.control_profile.to_dict(),
            'risk': self.risk.to_dict(),
            'hazard_categories': {k: list(v) for k, v in self.hazard_categories.items()},
            'hazard_classes': list(self.hazard_classes),
            'pictograms': list(self.pictograms),
            'exposure_routes': list(self.exposure_routes),
            'procedure': self.procedure.to_dict() if self.procedure else None,
        }


class RiskAssessor:
    def __init__(self, knowledge: Optional[KnowledgeBase] = None):
        self.knowledge = knowledge or default_knowledge_base()
        self.classifier = HazardClassifier(self.knowledge)
        self.likelihood = LikelihoodCalculator(self.knowledge)
        self.bander = ControlBander(self.knowledge)

    def resolve_procedure(self, procedure: Union[ProcedureProfile, str, None]) -> Optional[ProcedureProfile]:
        if procedure is None or isinstance(procedure, ProcedureProfile):
            return procedure
        if isinstance(procedure, str):
            return self.knowledge.get_procedure(procedure.strip())
        raise InvalidArgument(
            f"procedure must be a ProcedureProfile, a procedure name or None, got {type(procedure).__name__}")

    def assess(self, h_phrases: Iterable[str], signal_word: str = '',
               procedure: Union[ProcedureProfile, str, None] = None,
               quantity: Optional[float] = None, unit: str = 'mL',
               frequency: str = '', duration: str = '',
               physical_state: str = 'liquid', dustiness: Optional[str] = None,
               boiling_point_c: Optional[float] = None, operating_temp_c: float = 20.0,
               quantity_group: Optional[str] = None) -> RiskAssessment:
        """
        Assess one substance used in one task.

        Args:
            h_phrases: Hazard statements, after any user review
            signal_word: 'Danger', 'Warning' or ''
            procedure: Procedure profile or catalog name, None when unknown
            quantity: Amount handled per task, None when unknown
            unit: Unit of the quantity
            frequency: weekly, daily, multiple_daily or anything else for rare use
            duration: medium, long, very_long or anything else for short tasks
            physical_state: solid, liquid or gas
            dustiness: low, medium or high for solids
            boiling_point_c: Boiling point for liquids
            operating_temp_c: Process temperature for liquids
            quantity_group: Explicit Small/Medium/Large, overriding the one derived from quantity

        Returns:
            RiskAssessment with scores, bands and control measures
        """
        phrases = normalize_phrases(h_phrases)
        profile = self.resolve_procedure(procedure)

        severity = self.classifier.calculate_severity(phrases, signal_word)
        hazard_group = self.classifier.resolve_hazard_group(phrases)
        likelihood = self.likelihood.calculate_likelihood(
            profile, 0 if quantity is None else quantity, unit, frequency, duration)

        if quantity_group is not None:
            quantity_group = match_choice(quantity_group, QUANTITY_GROUPS, 'quantity group')
        elif quantity is None:
            quantity_group = profile.volume_category if profile else 'Small'
        else:
            quantity_group = self.bander.classify_quantity_group(quantity, unit)

        physical_group = self.bander.classify_physical_characteristics(
            physical_state, dustiness, boiling_point_c, operating_temp_c)
        band = self.bander.resolve_control_band(hazard_group, quantity_group, physical_group)

        logger.info("Assessed %s: severity %s, likelihood %.1f, group %s, band %s",
                    ', '.join(phrases) or 'no H-phrases', severity, likelihood, hazard_group, band)

        return RiskAssessment(
            h_phrases=tuple(phrases),
            signal_word=signal_word.strip().capitalize(),
            severity=severity,
            likelihood=likelihood,
            likelihood_band=likelihood_band(likelihood),
            hazard_group=hazard_group,
            quantity_group=quantity_group,
            physical_group=physical_group,
            control_band=band,
            control_profile=self.bander.get_control_band_profile(band),
            risk=self.bander.rate_risk(severity, likelihood),
            hazard_categories=self.classifier.classify_hazard_statements(phrases),
            hazard_classes=tuple(self.classifier.summarize_hazard_classes(phrases)),
            pictograms=tuple(self.classifier.infer_pictograms(phrases)),
            exposure_routes=profile.routes if profile else (),
            procedure=profile,
        )

    def assess_facts(self, facts: HazardFacts, **task) -> RiskAssessment:
        """Assess using H-phrases and signal word extracted from a safety data sheet"""
        assessment = self.assess(list(facts.h_phrases.value), facts.signal_word.value, **task)
        # Pictograms printed on the sheet take precedence over inferred ones
        if facts.pictograms.found and facts.pictograms.confidence == HIGH:
            assessment = replace(assessment, pictograms=tuple(facts.pictograms.value))
        return assessment
