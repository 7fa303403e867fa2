"""
Hazard fact extraction from safety data sheet text.
Best-effort regex extraction of chemical identity, signal word, H/P-phrases,
pictograms and key sections. Every field carries a confidence tag and the
extractor never raises on odd document text.
"""
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from coshh.errors import InvalidArgument
from coshh.hazard_classifier import HazardClassifier
from coshh.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

HIGH, MEDIUM, LOW = 'high', 'medium', 'low'
CONFIDENCE_LEVELS = (HIGH, MEDIUM, LOW)

NAME_NOT_FOUND = 'Not clearly found'
SECTION_NOT_FOUND = 'Not clearly found in MSDS.'
DISPOSAL_FALLBACK = 'Refer to full Section 13 of MSDS.'

NAME_LABELS = r'(?:Product name|Substance name|Trade name|Chemical Name|Product Identifier)'

SDS_PATTERNS = {
    'labelled_name': re.compile(
        NAME_LABELS + r'\s*[:\s]+([^\n\r]+?)(?:\s*Product number|\s*Brand|\s*CAS No\.?|\s*EC No\.'
        r'|\s*Index No\.|\s*Unique Formula|\s*REACH|\n\n|$)',
        re.IGNORECASE | re.MULTILINE),
    'section3_name': re.compile(
        r"SECTION 3.*?Chemical Name.*?(\w[\w \t\-(),.']+?)(?:\s+\d{2,7}-\d{2}-\d|\s+\d{3}-\d{3}-\d"
        r"|\s+CAS|\s+EC|98-100|$)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL),
    'heading_name': re.compile(
        r'^[ \t]*([A-Z][A-Za-z0-9 \t\-(,).]+?)[\n\r]+\s*(?:1\.\d|SECTION 1|CAS|EC Number|Synonyms'
        r'|Product number)',
        re.MULTILINE),
    'first_capitalized_line': re.compile(r'^[ \t]*([A-Z][A-Za-z0-9 \t\-(),]{5,})', re.MULTILINE),
    'name_prefix': re.compile(r'^' + NAME_LABELS + r'\s*:\s*', re.IGNORECASE),
    'name_suffix': re.compile(r'\s+(?:Not Applicable|N/A)$', re.IGNORECASE),
    'code_like_name': re.compile(r'^(?:[PH]\d{3}|\d{4,}$)'),
    'section3_cas': re.compile(r'SECTION 3.*?CAS No.*?(\d{2,7}-\d{2}-\d)', re.IGNORECASE | re.DOTALL),
    'labelled_cas': re.compile(r'CAS\s*-?\s*No\.?\s*:?\s*(\d{2,7}-\d{2}-\d)', re.IGNORECASE),
    'general_cas': re.compile(
        r'(?:CAS\s*(?:–\s*No\.|Number|No\.?|-num|RN)\s*:?\s*|Chemical Abstracts Service number\s*:\s*)'
        r'([\d \t–-]{4,12}\d)',
        re.IGNORECASE),
    'bare_cas': re.compile(r'\b(\d{2,7}-\d{2}-\d)\b'),
    'cas_number': re.compile(r'^\d{2,7}-\d{2}-\d$'),
    'signal_word': re.compile(r'Signal Word\s*[:-]?\s*(Danger|Warning)', re.IGNORECASE),
    'pictogram': re.compile(r'\b(GHS\d{2})\b', re.IGNORECASE),
    'hazard_statement': re.compile(r'\b(H\d{3}[A-Za-z]*(?:\s*\+\s*H\d{3}[A-Za-z]*)*)\b', re.IGNORECASE),
    'precautionary_statement': re.compile(
        r'\b(P\d{3}[A-Za-z]*(?:\s*\+\s*P\d{3}[A-Za-z]*)*)\b', re.IGNORECASE),
}

# field: (section start patterns, section stop patterns)
SECTION_MARKERS = {
    'first_aid': (
        [r'SECTION\s*4\b', r'4\.\s*First-?aid measures', r'First-?Aid Measures'],
        [r'SECTION\s*5\b', r'5\.\s*Fire-?fighting measures']),
    'handling_and_storage': (
        [r'SECTION\s*7\b', r'7\.\s*Handling and storage', r'Handling and Storage'],
        [r'SECTION\s*8\b', r'8\.\s*Exposure controls']),
    'spillage': (
        [r'SECTION\s*6\b', r'6\.\s*Accidental release measures', r'Accidental Release Measures'],
        [r'SECTION\s*7\b', r'7\.\s*Handling and storage']),
    'disposal': (
        [r'SECTION\s*13\b', r'13\.\s*Disposal considerations', r'Disposal Considerations'],
        [r'SECTION\s*14\b', r'14\.\s*Transport information']),
}

MAX_SECTION_CHARS = 5000
MAX_DISPOSAL_CHARS = 300
EARLY_TEXT_CHARS = 1500

DISPOSAL_KEYWORDS = re.compile(
    r'\b(dispose|disposal|waste|container|regulation|accordance|local|national|authority)\b', re.IGNORECASE)
DISPOSAL_PRIORITY = re.compile(r'must be disposed|in accordance with|handle .* like the product', re.IGNORECASE)
SUBSECTION_NUMBER = re.compile(r'^\d{1,2}\.\d{1,2}')


@dataclass(frozen=True)
class ExtractedField:
    """A value pulled from document text, tagged with how it was found"""
    value: Any
    confidence: str
    found: bool

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {'value': value, 'confidence': self.confidence, 'found': self.found}


@dataclass(frozen=True)
class HazardFacts:
    chemical_name: ExtractedField
    cas_number: ExtractedField
    signal_word: ExtractedField
    h_phrases: ExtractedField
    p_phrases: ExtractedField
    pictograms: ExtractedField
    first_aid: ExtractedField
    handling_and_storage: ExtractedField
    spillage: ExtractedField
    disposal: ExtractedField

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: getattr(self, name).to_dict() for name in self.__dataclass_fields__}

    def needs_review(self) -> List[str]:
        """Names of fields a person should check before the facts are used"""
        return [name for name in self.__dataclass_fields__
                if getattr(self, name).confidence == LOW]

    def with_overrides(self, **values) -> 'HazardFacts':
        """Copy with user-confirmed values replacing the extracted ones"""
        changes = {}
        for name, value in values.items():
            if name not in self.__dataclass_fields__:
                raise InvalidArgument(f"Unknown hazard fact: {name}")
            if value is None:
                continue
            if isinstance(value, (list, set, frozenset)):
                value = tuple(value)
            changes[name] = ExtractedField(value=value, confidence=HIGH, found=True)
        return replace(self, **changes)


def validate_cas_number(cas: str) -> bool:
    """Validate CAS number using check digit"""
    if not SDS_PATTERNS['cas_number'].match(cas):
        return False

    digits = cas.replace('-', '')
    check_digit = int(digits[-1])
    calculated = sum(int(d) * (i + 1) for i, d in enumerate(digits[-2::-1])) % 10

    return check_digit == calculated


def _downgrade(confidence: str) -> str:
    return CONFIDENCE_LEVELS[min(CONFIDENCE_LEVELS.index(confidence) + 1, len(CONFIDENCE_LEVELS) - 1)]


def _collect_codes(pattern, text: str) -> Tuple[str, ...]:
    """Unique codes in order of first appearance, whitespace removed, uppercased"""
    codes = {}
    for match in pattern.finditer(text):
        codes.setdefault(re.sub(r'\s', '', match.group(1)).upper(), None)
    return tuple(codes)


def extract_chemical_name(text: str) -> ExtractedField:
    """Extract product or substance name, most specific pattern first"""
    value, confidence = '', LOW

    match = SDS_PATTERNS['labelled_name'].search(text)
    if match and match.group(1).strip():
        candidate = match.group(1).strip()
        # P-phrases and bare numbers sometimes follow the label
        if not SDS_PATTERNS['code_like_name'].match(candidate):
            value, confidence = candidate, HIGH

    if not value:
        match = SDS_PATTERNS['section3_name'].search(text)
        if match and match.group(1).strip():
            value, confidence = match.group(1).strip(), HIGH

    if not value:
        match = SDS_PATTERNS['heading_name'].search(text)
        if match and match.group(1).strip():
            value, confidence = match.group(1).strip(), MEDIUM
        else:
            match = SDS_PATTERNS['first_capitalized_line'].search(text)
            if match and match.group(1).strip():
                value, confidence = match.group(1).strip(), LOW

    value = SDS_PATTERNS['name_prefix'].sub('', value).strip()
    value = SDS_PATTERNS['name_suffix'].sub('', value).strip()

    if not value:
        return ExtractedField(NAME_NOT_FOUND, LOW, False)
    return ExtractedField(value, confidence, True)


def extract_cas_number(text: str) -> ExtractedField:
    """Extract CAS registry number, downgrading candidates with a bad check digit"""
    value, confidence = '', LOW

    for key in ('section3_cas', 'labelled_cas'):
        match = SDS_PATTERNS[key].search(text)
        if match:
            value, confidence = match.group(1).strip(), HIGH
            break

    if not value:
        match = SDS_PATTERNS['general_cas'].search(text)
        if match:
            candidate = re.sub(r'\s+', '', re.sub(r'\s*–\s*', '-', match.group(1)))
            if SDS_PATTERNS['cas_number'].match(candidate):
                value, confidence = candidate, MEDIUM

    if not value:
        match = SDS_PATTERNS['bare_cas'].search(text[:EARLY_TEXT_CHARS])
        if match:
            value, confidence = match.group(1), MEDIUM

    if not value:
        return ExtractedField('', LOW, False)
    if not validate_cas_number(value):
        logger.debug("CAS number %s fails check digit", value)
        confidence = _downgrade(confidence)
    return ExtractedField(value, confidence, True)


def extract_signal_word(text: str) -> ExtractedField:
    match = SDS_PATTERNS['signal_word'].search(text)
    if match:
        return ExtractedField(match.group(1).capitalize(), HIGH, True)
    return ExtractedField('', MEDIUM, False)


def extract_phrases(text: str, kind: str = 'hazard_statement') -> ExtractedField:
    """Extract H-phrases (or P-phrases) including combined codes like H301+H311"""
    codes = _collect_codes(SDS_PATTERNS[kind], text)
    return ExtractedField(codes, HIGH if codes else MEDIUM, bool(codes))


def extract_pictograms(text: str, h_phrases: Tuple[str, ...],
                       knowledge: Optional[KnowledgeBase] = None) -> ExtractedField:
    """Explicit GHS codes, or pictograms inferred from H-phrases when none are printed"""
    explicit = _collect_codes(SDS_PATTERNS['pictogram'], text)
    if explicit:
        return ExtractedField(tuple(sorted(explicit)), HIGH, True)

    inferred = HazardClassifier(knowledge).infer_pictograms(h_phrases)
    if inferred:
        return ExtractedField(tuple(sorted(inferred)), MEDIUM, True)
    return ExtractedField((), LOW, False)


def extract_section(text: str, start_patterns: List[str], stop_patterns: List[str]) -> ExtractedField:
    """
    Text between a section header and the next section header.

    A header with a matching stop is high confidence. A header alone is
    medium and the text is cut at MAX_SECTION_CHARS.
    """
    start = re.search('(?:' + '|'.join(start_patterns) + ')', text, re.IGNORECASE | re.MULTILINE)
    if not start:
        return ExtractedField(SECTION_NOT_FOUND, LOW, False)

    remaining = text[start.end():]
    stop = re.search('(?:' + '|'.join(stop_patterns) + ')', remaining, re.IGNORECASE | re.MULTILINE)
    if stop:
        section, confidence = remaining[:stop.start()], HIGH
    else:
        section, confidence = remaining[:MAX_SECTION_CHARS], MEDIUM

    section = re.sub(r'^[\s:\-.]+', '', section).strip()
    if not section:
        return ExtractedField(SECTION_NOT_FOUND, LOW, False)
    return ExtractedField(section, confidence, True)


def _truncate(text: str) -> str:
    if len(text) > MAX_DISPOSAL_CHARS:
        return text[:MAX_DISPOSAL_CHARS] + '... (see full section)'
    return text


def condense_disposal(section: ExtractedField) -> ExtractedField:
    """Reduce the disposal section to its actionable sentences"""
    if not section.found:
        return ExtractedField(DISPOSAL_FALLBACK, section.confidence, False)

    lines = [line.strip() for line in re.split(r'[\n\r]+', section.value)]
    lines = [line for line in lines if len(line) > 10]
    relevant = [line for line in lines
                if DISPOSAL_KEYWORDS.search(line) and not SUBSECTION_NUMBER.match(line)]

    if relevant:
        priority = [line for line in relevant if DISPOSAL_PRIORITY.search(line)]
        summary = ' '.join((priority or relevant)[:3])
    elif lines:
        summary = ' '.join(lines[:2])
    else:
        return ExtractedField(DISPOSAL_FALLBACK, section.confidence, False)

    return ExtractedField(_truncate(summary), section.confidence, True)


def extract_hazard_facts(raw_text: str, knowledge: Optional[KnowledgeBase] = None) -> HazardFacts:
    """
    Extract hazard facts from safety data sheet text.

    Args:
        raw_text: Text of the document, as produced by a PDF or text loader
        knowledge: Tables used to infer pictograms from H-phrases

    Returns:
        HazardFacts with a confidence-tagged value for every field
    """
    if not isinstance(raw_text, str):
        raise InvalidArgument(f"raw_text must be a string, got {type(raw_text).__name__}")

    h_phrases = extract_phrases(raw_text, 'hazard_statement')
    sections = {name: extract_section(raw_text, starts, stops)
                for name, (starts, stops) in SECTION_MARKERS.items()}

    facts = HazardFacts(
        chemical_name=extract_chemical_name(raw_text),
        cas_number=extract_cas_number(raw_text),
        signal_word=extract_signal_word(raw_text),
        h_phrases=h_phrases,
        p_phrases=extract_phrases(raw_text, 'precautionary_statement'),
        pictograms=extract_pictograms(raw_text, h_phrases.value, knowledge),
        first_aid=sections['first_aid'],
        handling_and_storage=sections['handling_and_storage'],
        spillage=sections['spillage'],
        disposal=condense_disposal(sections['disposal']),
    )

    logger.debug("Extracted %d H-phrases, name confidence %s, fields for review: %s",
                 len(h_phrases.value), facts.chemical_name.confidence, facts.needs_review())
    return facts
