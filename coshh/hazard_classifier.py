"""
Hazard classification for COSHH assessments.
Turns H-phrases and a signal word into a severity score, a COSHH Essentials
hazard group, hazard categories and the GHS pictograms they imply.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from coshh.errors import InvalidArgument
from coshh.knowledge import HAZARD_GROUPS, KnowledgeBase, default_knowledge_base

logger = logging.getLogger(__name__)

BASE_CODE = re.compile(r'^H(\d{3})')

# (label, codes that trigger it, codes that suppress it when also present)
HAZARD_CLASS_RULES = [
    ('Flammable', ('H22',), ()),
    ('Acutely Toxic (Fatal)', ('H300', 'H310', 'H330'), ()),
    ('Acutely Toxic', ('H301', 'H311', 'H331'), ('H300', 'H310', 'H330')),
    ('Corrosive/Serious Eye Damage', ('H314', 'H318'), ()),
    ('Irritant (Skin/Eye)', ('H315', 'H319'), ('H314', 'H318')),
    ('Sensitiser', ('H317', 'H334'), ()),
    ('Carcinogen', ('H350', 'H351'), ()),
    ('Mutagen', ('H340', 'H341'), ()),
    ('Reproductive Toxin', ('H360', 'H361'), ()),
]


def normalize_phrases(h_phrases: Any) -> List[str]:
    """Validate a collection of H-phrases and return them trimmed and uppercased"""
    if isinstance(h_phrases, (str, bytes)) or not isinstance(h_phrases, (list, tuple, set, frozenset)):
        raise InvalidArgument(
            f"h_phrases must be a list, tuple or set of strings, got {type(h_phrases).__name__}")

    normalized = []
    for phrase in h_phrases:
        if not isinstance(phrase, str):
            raise InvalidArgument(f"H-phrase must be a string, got {type(phrase).__name__}")
        normalized.append(phrase.strip().upper())
    return normalized


def _prefix_matches(phrase: str, table: Mapping[str, Any]) -> List[Any]:
    """Values of every table key the phrase starts with"""
    return [value for key, value in table.items() if phrase.startswith(key)]


class HazardClassifier:
    def __init__(self, knowledge: Optional[KnowledgeBase] = None):
        self.knowledge = knowledge or default_knowledge_base()

    def signal_word_severity(self, signal_word: str) -> int:
        """Severity floor implied by a GHS signal word"""
        if not isinstance(signal_word, str):
            raise InvalidArgument(f"signal_word must be a string, got {type(signal_word).__name__}")
        return self.knowledge.signal_word_severity.get(signal_word.strip().upper(), 1)

    def calculate_severity(self, h_phrases: Iterable[str], signal_word: str = '') -> int:
        """
        Severity score (1-5) from H-phrases and the signal word.

        The highest matched H-phrase severity wins. Phrases that match nothing
        count as the table default. An empty list leaves the signal word as
        the only input.
        """
        phrases = normalize_phrases(h_phrases)
        signal_severity = self.signal_word_severity(signal_word)

        matched_severity = 0
        if phrases:
            for phrase in phrases:
                for severity in _prefix_matches(phrase, self.knowledge.severity_by_phrase):
                    if severity > matched_severity:
                        matched_severity = severity
            if matched_severity == 0:
                matched_severity = self.knowledge.default_severity

        severity = max(matched_severity, signal_severity)
        logger.debug("Severity %s (phrases=%s, matched=%s, signal=%s)",
                     severity, phrases, matched_severity, signal_severity)
        return severity

    def resolve_hazard_group(self, h_phrases: Iterable[str]) -> str:
        """
        COSHH Essentials hazard group (A-E or S) for a set of H-phrases.

        The most restrictive matched group wins. Nothing matched, including an
        empty list, resolves to the conservative unmapped group (C).
        """
        phrases = normalize_phrases(h_phrases)
        groups = [group for phrase in phrases
                  for group in _prefix_matches(phrase, self.knowledge.group_by_phrase)]

        if not groups:
            logger.debug("No hazard group matched for %s, using %s",
                         phrases, self.knowledge.unmapped_group)
            return self.knowledge.unmapped_group

        return max(groups, key=HAZARD_GROUPS.index)

    def classify_hazard_statements(self, h_phrases: Iterable[str]) -> Dict[str, List[str]]:
        """Sort H-phrases into physical, health and environmental hazards"""
        classification = {
            'physical_hazards': [],
            'health_hazards': [],
            'environmental_hazards': []
        }

        for phrase in normalize_phrases(h_phrases):
            match = BASE_CODE.match(phrase)
            if not match:
                continue

            code_num = int(match.group(1))
            if 200 <= code_num <= 299:
                classification['physical_hazards'].append(phrase)
            elif 300 <= code_num <= 399:
                classification['health_hazards'].append(phrase)
            elif 400 <= code_num <= 499:
                classification['environmental_hazards'].append(phrase)

        return classification

    def summarize_hazard_classes(self, h_phrases: Iterable[str]) -> List[str]:
        """Readable hazard classes for a report, e.g. 'Carcinogen'"""
        phrases = normalize_phrases(h_phrases)

        def present(prefixes):
            return any(phrase.startswith(prefix) for phrase in phrases for prefix in prefixes)

        classes = [label for label, triggers, suppressors in HAZARD_CLASS_RULES
                   if present(triggers) and not present(suppressors)]
        return classes or ['See H-Phrases']

    def infer_pictograms(self, h_phrases: Iterable[str]) -> List[str]:
        """GHS pictogram codes implied by the H-phrases, sorted"""
        pictograms = set()
        for phrase in normalize_phrases(h_phrases):
            # Combined codes such as H301+H311 imply a pictogram for each part
            for part in phrase.split('+'):
                pictogram = self.knowledge.pictogram_by_phrase.get(part.strip()[:4])
                if pictogram:
                    pictograms.add(pictogram)
        return sorted(pictograms)

    def get_hazard_category_summary(self, h_phrases: Iterable[str],
                                    signal_word: str = '') -> Dict[str, Any]:
        """Get comprehensive hazard analysis for a substance"""
        phrases = normalize_phrases(h_phrases)
        severity = self.calculate_severity(phrases, signal_word)
        pictograms = self.infer_pictograms(phrases)

        return {
            'h_phrases': phrases,
            'signal_word': signal_word.strip().capitalize(),
            'severity': severity,
            'hazard_group': self.resolve_hazard_group(phrases),
            'classification': self.classify_hazard_statements(phrases),
            'hazard_classes': self.summarize_hazard_classes(phrases),
            'pictograms': pictograms,
            'pictogram_meanings': [self.knowledge.pictogram_meanings.get(p, p) for p in pictograms],
            'statements': {phrase: self.knowledge.describe_phrase(phrase) for phrase in phrases},
        }
