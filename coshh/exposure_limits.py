"""
UK workplace exposure limits (HSE EH40).
Loads the EH40 table and finds the limits for a substance by CAS number or name.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from rapidfuzz import fuzz, process

from coshh.errors import DocumentError

logger = logging.getLogger(__name__)

COLUMNS = ['substance', 'cas_number', 'twa_ppm', 'twa_mg_m3', 'stel_ppm', 'stel_mg_m3']
LIMIT_COLUMNS = COLUMNS[2:]
NOT_SET = ('', '-')

MIN_PARTIAL_NAME_LENGTH = 4
FUZZY_SCORE_CUTOFF = 90


@dataclass(frozen=True)
class ExposureLimit:
    """EH40 limits for one substance, None where no limit is set"""
    substance: str
    cas_number: str
    twa_ppm: Optional[str]
    twa_mg_m3: Optional[str]
    stel_ppm: Optional[str]
    stel_mg_m3: Optional[str]
    match_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


def normalize_substance_name(name: str) -> str:
    if not name:
        return ''
    name = re.sub(r'[^\w\s-]', '', name.lower())
    return re.sub(r'\s+', ' ', name).strip()


def normalize_cas_number(cas: str) -> str:
    if not cas:
        return ''
    return re.sub(r'\s+', '', cas)


class ExposureLimitTable:
    def __init__(self, frame: pd.DataFrame):
        frame = frame.iloc[:, :len(COLUMNS)].copy()
        frame.columns = COLUMNS
        frame = frame.dropna().astype(str).apply(lambda column: column.str.strip())
        frame = frame[frame['substance'] != ''].reset_index(drop=True)

        frame['normalized_name'] = frame['substance'].map(normalize_substance_name)
        frame['normalized_cas'] = frame['cas_number'].map(normalize_cas_number)
        self.frame = frame

    @classmethod
    def from_csv(cls, csv_path: Union[str, Path]) -> 'ExposureLimitTable':
        """Load the EH40 table; the first six columns are used, short rows skipped"""
        try:
            frame = pd.read_csv(csv_path, dtype=str, keep_default_na=False,
                                skipinitialspace=True)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DocumentError(f"Could not read exposure limit table {csv_path}: {e}") from e

        if frame.shape[1] < len(COLUMNS):
            raise DocumentError(
                f"Exposure limit table {csv_path} has {frame.shape[1]} columns, expected {len(COLUMNS)}")

        table = cls(frame)
        logger.info("Loaded %d substances from %s", len(table), csv_path)
        return table

    @classmethod
    def from_records(cls, records: List[Dict[str, str]]) -> 'ExposureLimitTable':
        """Build a table from dicts keyed by column name; missing limits mean not set"""
        frame = pd.DataFrame(records, columns=COLUMNS)
        frame[LIMIT_COLUMNS] = frame[LIMIT_COLUMNS].fillna('-')
        frame['cas_number'] = frame['cas_number'].fillna('')
        return cls(frame)

    def __len__(self):
        return len(self.frame)

    def _to_limit(self, row: pd.Series, match_type: str) -> ExposureLimit:
        limits = {column: (None if row[column] in NOT_SET else row[column]) for column in LIMIT_COLUMNS}
        return ExposureLimit(substance=row['substance'], cas_number=row['cas_number'],
                             match_type=match_type, **limits)

    def lookup(self, name: str = '', cas_number: str = '') -> Optional[ExposureLimit]:
        """
        Find exposure limits for a substance.

        Tried in order: exact CAS number, exact name, one name containing
        the other, then a fuzzy name match.
        """
        normalized_cas = normalize_cas_number(cas_number)
        normalized_name = normalize_substance_name(name)
        frame = self.frame

        if normalized_cas and normalized_cas != '-':
            matches = frame[frame['normalized_cas'] == normalized_cas]
            if not matches.empty:
                return self._to_limit(matches.iloc[0], 'CAS')

        if not normalized_name:
            return None

        matches = frame[frame['normalized_name'] == normalized_name]
        if not matches.empty:
            return self._to_limit(matches.iloc[0], 'exact name')

        if len(normalized_name) >= MIN_PARTIAL_NAME_LENGTH:
            contains = frame['normalized_name'].map(
                lambda entry: bool(entry) and (normalized_name in entry or entry in normalized_name))
            matches = frame[contains]
            if not matches.empty:
                return self._to_limit(matches.iloc[0], 'partial name')

        best = process.extractOne(normalized_name, frame['normalized_name'].tolist(),
                                  scorer=fuzz.token_sort_ratio, score_cutoff=FUZZY_SCORE_CUTOFF)
        if best:
            _, score, index = best
            logger.debug("Fuzzy EH40 match for %r: %s (score %.1f)",
                         name, frame.iloc[index]['substance'], score)
            return self._to_limit(frame.iloc[index], 'fuzzy name')

        return None
