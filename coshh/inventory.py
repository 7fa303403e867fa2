"""
Chemical inventory ingestion.
Reads the inventory export, works out which containers still need a COSHH
assessment and assesses a whole inventory into a pandas DataFrame.
"""
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from coshh.assessment import RiskAssessor
from coshh.errors import CoshhError, DocumentError
from coshh.extractors import SDS_PATTERNS
from coshh.likelihood import canonical_unit

logger = logging.getLogger(__name__)

STATUS_COMPLETE = 'complete'
STATUS_NEEDS_ASSESSMENT = 'needs_assessment'
STATUS_NOT_REQUIRED = 'not_required'

ASSESSMENT_COLUMNS = [
    'id', 'name', 'cas_number', 'status', 'h_phrases', 'severity', 'likelihood',
    'hazard_group', 'quantity_group', 'control_band', 'risk_level', 'error',
]


def load_inventory(inventory_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load inventory records from the exported JSON file"""
    path = Path(inventory_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DocumentError(f"Could not read inventory {path}: {e}") from e

    records = data.get('inventory') if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise DocumentError(f"Inventory {path} has no list of records")

    skipped = [entry for entry in records if not isinstance(entry, dict)]
    if skipped:
        logger.warning("Skipping %d inventory entries in %s that are not records", len(skipped), path)
        records = [entry for entry in records if isinstance(entry, dict)]

    logger.info("Loaded %d inventory records from %s", len(records), path)
    return records


def record_h_phrases(record: Dict[str, Any]) -> List[str]:
    """H-phrase codes in a record, whatever text accompanies them"""
    phrases = []
    for statement in record.get('hazardStatements') or []:
        for match in SDS_PATTERNS['hazard_statement'].finditer(str(statement)):
            code = ''.join(match.group(1).split()).upper()
            if code not in phrases:
                phrases.append(code)
    return phrases


def record_quantity(record: Dict[str, Any]) -> Tuple[Optional[float], Optional[str]]:
    """Container size and unit, or (None, None) when either is unusable"""
    size, units = record.get('size'), record.get('units')
    if size is None or units is None:
        return None, None
    try:
        quantity = float(size)
        unit = canonical_unit(units)
    except (TypeError, ValueError):
        return None, None
    if not math.isfinite(quantity) or quantity < 0:
        return None, None
    return quantity, unit


def assessment_status(record: Dict[str, Any]) -> str:
    """Assessment status from the inventory custom fields, falling back to hazards"""
    custom_fields = record.get('customFields') or {}
    if custom_fields.get('coshhCompleted') == 'Yes':
        return STATUS_COMPLETE
    if custom_fields.get('coshhRequired') == 'No':
        return STATUS_NOT_REQUIRED
    if custom_fields.get('coshhRequired') == 'Yes':
        return STATUS_NEEDS_ASSESSMENT
    return STATUS_NEEDS_ASSESSMENT if record.get('hazardStatements') else STATUS_NOT_REQUIRED


def status_report(records: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per record with its assessment status"""
    rows = []
    for record in records:
        required = (record.get('customFields') or {}).get('coshhRequired') == 'Yes'
        rows.append({
            'chemical_id': record.get('id'),
            'chemical_name': record.get('name'),
            'status': assessment_status(record),
            'notes': 'COSHH assessment required (from inventory)' if required else '',
        })
    return pd.DataFrame(rows, columns=['chemical_id', 'chemical_name', 'status', 'notes'])


def assess_inventory(records: List[Dict[str, Any]], assessor: Optional[RiskAssessor] = None,
                     **task_defaults) -> pd.DataFrame:
    """
    Assess every record in an inventory.

    Each record's own container size and unit replace the default quantity
    when usable. A record that cannot be assessed gets an error message
    instead of stopping the batch.
    """
    assessor = assessor or RiskAssessor()
    rows = []

    for record in records:
        h_phrases = record_h_phrases(record)
        row = {
            'id': record.get('id'),
            'name': record.get('name'),
            'cas_number': record.get('casNumber'),
            'status': assessment_status(record),
            'h_phrases': ', '.join(h_phrases),
        }

        task = dict(task_defaults)
        quantity, unit = record_quantity(record)
        if quantity is not None:
            task.update(quantity=quantity, unit=unit)

        try:
            assessment = assessor.assess(h_phrases, record.get('signalWord') or '', **task)
        except CoshhError as e:
            logger.warning("Could not assess %s (%s): %s", record.get('name'), record.get('id'), e)
            row['error'] = str(e)
        else:
            row.update({
                'severity': assessment.severity,
                'likelihood': assessment.likelihood,
                'hazard_group': assessment.hazard_group,
                'quantity_group': assessment.quantity_group,
                'control_band': assessment.control_band,
                'risk_level': assessment.risk.level,
                'error': None,
            })
        rows.append(row)

    return pd.DataFrame(rows, columns=ASSESSMENT_COLUMNS)
