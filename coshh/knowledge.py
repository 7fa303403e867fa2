"""
Hazard knowledge tables for COSHH risk classification.
H-phrase severities and hazard groups, GHS pictograms, the laboratory
procedure catalog, control band profiles and the COSHH Essentials band matrix.

Tables are held by an immutable KnowledgeBase that callers construct (or take
from default_knowledge_base()) and pass to the calculators.
"""
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from coshh.errors import InvalidArgument, NotFound, RangeViolation

HAZARD_GROUPS = ('A', 'B', 'C', 'D', 'E', 'S')
QUANTITY_GROUPS = ('Small', 'Medium', 'Large')
PHYSICAL_GROUPS = ('Low', 'Medium', 'High')
CONTROL_BANDS = ('1', '2', '3', '4', 'S')
EXPOSURE_ROUTES = ('SkinContact', 'EyeContact', 'Ingestion', 'Inhalation')


@dataclass(frozen=True)
class ProcedureProfile:
    """A named laboratory procedure and its exposure characteristics"""
    name: str
    description: str
    volume_category: str
    exposure_factor: float
    aerosol_factor: float
    routes: Tuple[str, ...] = ()

    def __post_init__(self):
        for label, value in (('exposure_factor', self.exposure_factor),
                             ('aerosol_factor', self.aerosol_factor)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgument(f"{label} must be a number, got {type(value).__name__}")
            if not 0.0 <= value <= 1.0:
                raise RangeViolation(f"{label} must be within [0, 1], got {value}")
        if self.volume_category not in QUANTITY_GROUPS:
            raise InvalidArgument(f"Unknown volume category: {self.volume_category!r}")
        unknown = [route for route in self.routes if route not in EXPOSURE_ROUTES]
        if unknown:
            raise InvalidArgument(f"Unknown exposure routes: {unknown}")
        object.__setattr__(self, 'routes', tuple(self.routes))

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': self.name,
            'description': self.description,
            'volume_category': self.volume_category,
            'exposure_factor': self.exposure_factor,
            'aerosol_factor': self.aerosol_factor,
            'routes': list(self.routes),
        }


@dataclass(frozen=True)
class ControlBandProfile:
    """Control measures and PPE guidance for one control band"""
    band: str
    general_control: str
    ppe_sheet: str
    ppe_text: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'band': self.band,
            'general_control': self.general_control,
            'ppe_sheet': self.ppe_sheet,
            'ppe_text': self.ppe_text,
        }


def _freeze(mapping):
    """Read-only copy of a (possibly nested) dict"""
    return MappingProxyType({
        key: _freeze(value) if isinstance(value, dict) else value
        for key, value in mapping.items()
    })


@dataclass(frozen=True)
class KnowledgeBase:
    """
    Immutable bundle of every table the calculators consult.

    Mapping fields are wrapped in read-only proxies on construction, so a
    KnowledgeBase can be shared between threads and test cases freely.
    """
    severity_by_phrase: Mapping[str, int]
    group_by_phrase: Mapping[str, str]
    pictogram_by_phrase: Mapping[str, str]
    procedures: Mapping[str, ProcedureProfile]
    control_bands: Mapping[str, ControlBandProfile]
    band_matrix: Mapping[str, Mapping[str, Tuple[str, str, str]]]
    statement_text: Mapping[str, str] = field(default_factory=dict)
    pictogram_meanings: Mapping[str, str] = field(default_factory=dict)
    signal_word_severity: Mapping[str, int] = field(
        default_factory=lambda: {'DANGER': 3, 'WARNING': 2})
    default_severity: int = 1
    unmapped_group: str = 'C'
    low_severity_group: str = 'B'
    no_significant_hazard_group: str = 'A'

    def __post_init__(self):
        for name in ('severity_by_phrase', 'group_by_phrase', 'pictogram_by_phrase',
                     'procedures', 'control_bands', 'band_matrix', 'statement_text',
                     'pictogram_meanings', 'signal_word_severity'):
            object.__setattr__(self, name, _freeze(dict(getattr(self, name))))

        bad_groups = {g for g in self.group_by_phrase.values() if g not in HAZARD_GROUPS}
        if bad_groups:
            raise InvalidArgument(f"Unknown hazard groups in table: {sorted(bad_groups)}")
        bad_severities = {s for s in self.severity_by_phrase.values() if not 1 <= s <= 5}
        if bad_severities:
            raise RangeViolation(f"Severities must be within [1, 5]: {sorted(bad_severities)}")

    def get_procedure(self, name: str) -> ProcedureProfile:
        """Look up a procedure profile by catalog name"""
        try:
            return self.procedures[name]
        except (KeyError, TypeError):
            raise NotFound(f"Unknown procedure: {name!r}") from None

    def procedure_names(self) -> List[str]:
        return list(self.procedures)

    def describe_phrase(self, h_phrase: str) -> Optional[str]:
        """Statement text for an H-phrase, matched on its base code"""
        return self.statement_text.get(h_phrase.strip().upper()[:4])


SEVERITY_BY_PHRASE = {
    # Fatal, carcinogenic, mutagenic, reprotoxic or organ damage
    'H300': 5, 'H310': 5, 'H330': 5, 'H340': 5, 'H350': 5,
    'H360': 5, 'H370': 5, 'H372': 5,
    # Toxic, corrosive, sensitising, suspected CMR
    'H301': 4, 'H311': 4, 'H331': 4, 'H314': 4, 'H318': 4, 'H334': 4,
    'H341': 4, 'H351': 4, 'H361': 4, 'H371': 4, 'H373': 4,
    # Harmful and irritant
    'H302': 3, 'H312': 3, 'H332': 3, 'H315': 3, 'H319': 3, 'H317': 3,
    'H335': 3, 'H336': 3, 'H224': 3,
    # Flammable
    'H220': 2, 'H221': 2, 'H222': 2, 'H223': 2, 'H225': 2,
    'H226': 1, 'H228': 1,
}

GROUP_BY_PHRASE = {
    'H300': 'E', 'H310': 'E', 'H330': 'E', 'H370': 'E', 'H372': 'E',
    'H340': 'S', 'H350': 'S', 'H360': 'S', 'H334': 'S',
    'H301': 'D', 'H311': 'D', 'H331': 'D', 'H314': 'D', 'H318': 'D',
    'H302': 'C', 'H312': 'C', 'H332': 'C', 'H315': 'C', 'H319': 'C',
    'H317': 'C', 'H224': 'C', 'H225': 'C',
}

PICTOGRAM_BY_PHRASE = {
    **{code: 'GHS08' for code in ('H350', 'H351', 'H340', 'H341', 'H360', 'H361', 'H362',
                                  'H370', 'H371', 'H372', 'H373', 'H334', 'H317')},
    **{code: 'GHS07' for code in ('H302', 'H312', 'H332', 'H315', 'H319', 'H320',
                                  'H335', 'H336')},
    **{code: 'GHS06' for code in ('H300', 'H301', 'H310', 'H311', 'H330', 'H331')},
    **{code: 'GHS05' for code in ('H314', 'H318')},
    **{code: 'GHS02' for code in ('H220', 'H221', 'H222', 'H223', 'H224', 'H225',
                                  'H226', 'H228')},
    **{code: 'GHS03' for code in ('H270', 'H271', 'H272')},
    **{code: 'GHS01' for code in ('H200', 'H201', 'H202', 'H203', 'H204', 'H205',
                                  'H240', 'H241')},
    **{code: 'GHS04' for code in ('H280', 'H281', 'H282', 'H283')},
    **{code: 'GHS09' for code in ('H400', 'H410', 'H411', 'H412', 'H413', 'H420', 'H429')},
}

PICTOGRAM_MEANINGS = {
    'GHS01': 'Explosive',
    'GHS02': 'Flammable',
    'GHS03': 'Oxidising',
    'GHS04': 'Gas under pressure',
    'GHS05': 'Corrosive',
    'GHS06': 'Acute toxicity',
    'GHS07': 'Harmful / irritant',
    'GHS08': 'Health hazard',
    'GHS09': 'Environmental hazard',
}

STATEMENT_TEXT = {
    'H200': 'Unstable explosive',
    'H201': 'Explosive; mass explosion hazard',
    'H220': 'Extremely flammable gas',
    'H221': 'Flammable gas',
    'H222': 'Extremely flammable aerosol',
    'H223': 'Flammable aerosol',
    'H224': 'Extremely flammable liquid and vapour',
    'H225': 'Highly flammable liquid and vapour',
    'H226': 'Flammable liquid and vapour',
    'H228': 'Flammable solid',
    'H270': 'May cause or intensify fire; oxidiser',
    'H271': 'May cause fire or explosion; strong oxidiser',
    'H272': 'May intensify fire; oxidiser',
    'H280': 'Contains gas under pressure; may explode if heated',
    'H290': 'May be corrosive to metals',
    'H300': 'Fatal if swallowed',
    'H301': 'Toxic if swallowed',
    'H302': 'Harmful if swallowed',
    'H304': 'May be fatal if swallowed and enters airways',
    'H310': 'Fatal in contact with skin',
    'H311': 'Toxic in contact with skin',
    'H312': 'Harmful in contact with skin',
    'H314': 'Causes severe skin burns and eye damage',
    'H315': 'Causes skin irritation',
    'H317': 'May cause an allergic skin reaction',
    'H318': 'Causes serious eye damage',
    'H319': 'Causes serious eye irritation',
    'H330': 'Fatal if inhaled',
    'H331': 'Toxic if inhaled',
    'H332': 'Harmful if inhaled',
    'H334': 'May cause allergy or asthma symptoms or breathing difficulties if inhaled',
    'H335': 'May cause respiratory irritation',
    'H336': 'May cause drowsiness or dizziness',
    'H340': 'May cause genetic defects',
    'H341': 'Suspected of causing genetic defects',
    'H350': 'May cause cancer',
    'H351': 'Suspected of causing cancer',
    'H360': 'May damage fertility or the unborn child',
    'H361': 'Suspected of damaging fertility or the unborn child',
    'H362': 'May cause harm to breast-fed children',
    'H370': 'Causes damage to organs',
    'H371': 'May cause damage to organs',
    'H372': 'Causes damage to organs through prolonged or repeated exposure',
    'H373': 'May cause damage to organs through prolonged or repeated exposure',
    'H400': 'Very toxic to aquatic life',
    'H410': 'Very toxic to aquatic life with long lasting effects',
    'H411': 'Toxic to aquatic life with long lasting effects',
    'H412': 'Harmful to aquatic life with long lasting effects',
    'H413': 'May cause long lasting harmful effects to aquatic life',
    'H420': 'Harms public health and the environment by destroying ozone in the upper atmosphere',
}

_SKIN_EYE = ('SkinContact', 'EyeContact')
_SKIN_EYE_INGESTION = ('SkinContact', 'EyeContact', 'Ingestion')
_SKIN_EYE_INHALATION = ('SkinContact', 'EyeContact', 'Inhalation')

# name: (description, volume category, exposure factor, routes, aerosol factor)
PROCEDURE_CATALOG = {
    'pipetting_micro': ('Pipetting microlitre volumes (<1mL)', 'Small', 0.2, _SKIN_EYE, 0.1),
    'pipetting_small': ('Pipetting small volumes (1-50mL)', 'Small', 0.3, _SKIN_EYE_INGESTION, 0.2),
    'pipetting_large': ('Pipetting larger volumes (>50mL)', 'Medium', 0.4, _SKIN_EYE_INGESTION, 0.3),
    'decanting_small': ('Decanting liquids (small scale, <1L)', 'Medium', 0.4, _SKIN_EYE_INHALATION, 0.3),
    'decanting_large': ('Decanting liquids (large scale, >1L)', 'Large', 0.6, _SKIN_EYE_INHALATION, 0.4),
    'weighing_solid_trace': ('Weighing trace/mg solids (enclosed balance)', 'Small', 0.1,
                             ('SkinContact',), 0.05),
    'weighing_solid_small_enclosed': ('Weighing grams of solid (enclosed balance)',
                                      'Small', 0.2, ('SkinContact',), 0.1),
    'weighing_solid_open': ('Weighing solids (open bench, potential for dust)', 'Medium', 0.7,
                            ('Inhalation', 'SkinContact'), 0.6),
    'mixing_stirring_closed': ('Mixing/stirring in a closed vessel', 'Medium', 0.2,
                               ('SkinContact',), 0.1),
    'mixing_stirring_open': ('Mixing/stirring in an open vessel', 'Medium', 0.5,
                             _SKIN_EYE_INHALATION, 0.4),
    'vortexing_closed': ('Vortexing in a capped tube', 'Small', 0.1, (), 0.05),
    'vortexing_open': ('Vortexing in an open tube (aerosol risk)', 'Small', 0.8, ('Inhalation', 'EyeContact'), 0.8),
    'centrifuging_sealed': ('Centrifuging with sealed rotors/tubes', 'Medium', 0.1, (), 0.05),
    'centrifuging_unsealed': ('Centrifuging with unsealed tubes (aerosol risk)', 'Medium', 0.9,
                              ('Inhalation',), 0.9),
    'heating_reflux_closed': ('Heating/reflux in a closed system', 'Medium', 0.2,
                              ('Inhalation',), 0.1),
    'heating_open_beaker': ('Heating in an open beaker', 'Medium', 0.6,
                            ('Inhalation', 'EyeContact'), 0.5),
    'surface_wiping_small': ('Surface wiping/cleaning (small area)', 'Small', 0.4,
                             ('SkinContact', 'Inhalation'), 0.2),
    'surface_wiping_large': ('Surface wiping/cleaning (large area)', 'Medium', 0.6,
                             ('SkinContact', 'Inhalation'), 0.3),
    'other_manual': ('User described procedure:', 'Medium', 0.5,
                     ('SkinContact', 'Inhalation', 'EyeContact', 'Ingestion'), 0.3),
}

CONTROL_BAND_TABLE = {
    '1': ('Ventilation100', 'S100_S200',
          'Basic PPE: Lab coat, safety glasses. Check MSDS for glove type if skin contact likely.'),
    '2': ('LEV200_201', 'S100_S200',
          'Effective LEV. PPE: As per Band 1 + specific gloves based on MSDS/breakthrough, '
          'consider face shield if splash risk.'),
    '3': ('Containment300_301', 'S100_S200',
          'Full containment. PPE: As per Band 2, higher level gloves, potential for RPE '
          'during maintenance/breach.'),
    '4': ('Specialist400', 'S100_S200',
          'Specialist advice required for controls and PPE. Likely full containment and '
          'high-level RPE.'),
    'S': ('Specialist400', 'S100_S200',
          'Specialist advice required (e.g., for carcinogens, mutagens, respiratory '
          'sensitisers). High level controls & PPE expected.'),
}

# Hazard group -> quantity group -> bands for (Low, Medium, High) physical group
BAND_MATRIX = {
    'A': {'Small': ('1', '1', '1'), 'Medium': ('1', '1', '2'), 'Large': ('1', '2', '2')},
    'B': {'Small': ('1', '1', '1'), 'Medium': ('1', '2', '2'), 'Large': ('1', '3', '3')},
    'C': {'Small': ('1', '2', '2'), 'Medium': ('2', '3', '3'), 'Large': ('2', '4', '4')},
    'D': {'Small': ('2', '3', '3'), 'Medium': ('3', '4', '4'), 'Large': ('3', '4', '4')},
}


def build_knowledge_base(**overrides) -> KnowledgeBase:
    """Build the standard knowledge base, optionally replacing whole tables"""
    tables = {
        'severity_by_phrase': SEVERITY_BY_PHRASE,
        'group_by_phrase': GROUP_BY_PHRASE,
        'pictogram_by_phrase': PICTOGRAM_BY_PHRASE,
        'procedures': {
            name: ProcedureProfile(name=name, description=desc, volume_category=category,
                                   exposure_factor=exposure, aerosol_factor=aerosol,
                                   routes=routes)
            for name, (desc, category, exposure, routes, aerosol) in PROCEDURE_CATALOG.items()
        },
        'control_bands': {
            band: ControlBandProfile(band=band, general_control=general,
                                     ppe_sheet=sheet, ppe_text=text)
            for band, (general, sheet, text) in CONTROL_BAND_TABLE.items()
        },
        'band_matrix': BAND_MATRIX,
        'statement_text': STATEMENT_TEXT,
        'pictogram_meanings': PICTOGRAM_MEANINGS,
    }
    tables.update(overrides)
    return KnowledgeBase(**tables)


@lru_cache(maxsize=1)
def default_knowledge_base() -> KnowledgeBase:
    """Process-wide standard knowledge base, built on first use"""
    return build_knowledge_base()
