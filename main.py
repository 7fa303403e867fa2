"""
COSHH Risk Assessment Tool
Extracts hazard facts from safety data sheets and classifies the risk of a
laboratory task: severity, likelihood, control band and control measures.

Usage:
    python main.py <sds_file> --procedure pipetting_small --quantity 20 --unit mL
    python main.py --h-phrases H225,H319 --signal-word Danger --quantity 2 --unit L
    python main.py --inventory chemical-inventory.json -o assessments.csv
    python main.py --help

Features:
- pdfplumber-based text extraction from PDF safety data sheets
- Confidence-tagged H-phrase, signal word and pictogram extraction
- COSHH Essentials hazard groups and control bands
- EH40 workplace exposure limit lookup
- Batch assessment of an inventory export
- Caching of extracted facts
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from coshh.assessment import RiskAssessor
from coshh.cache_manager import ExtractionCache
from coshh.errors import CoshhError
from coshh.exposure_limits import ExposureLimitTable
from coshh.extractors import HazardFacts, extract_hazard_facts
from coshh.inventory import assess_inventory, load_inventory
from coshh.knowledge import default_knowledge_base
from coshh.likelihood import VALID_UNITS
from coshh.utils import load_document_text

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="COSHH risk assessment from safety data sheets and inventory records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Assess a safety data sheet for a pipetting task
  python main.py samples/acetone.pdf --procedure pipetting_small --quantity 20 --unit mL --frequency daily

  # Assess known hazards without a document
  python main.py --h-phrases H350,H302 --signal-word Danger --physical-state solid --dustiness low

  # Override extracted H-phrases after review and add exposure limits
  python main.py sds.txt --h-phrases H225,H319 --wel-table data/eh40_table.csv

  # Assess a whole inventory export to CSV
  python main.py --inventory data/chemical-inventory.json -o assessments.csv

  # List procedures, clear cache
  python main.py --list-procedures
  python main.py --clear-cache
        """
    )

    parser.add_argument('document', nargs='?', help='Safety data sheet (PDF or text file)')

    hazards = parser.add_argument_group('hazards')
    hazards.add_argument('--h-phrases', help='Comma-separated H-phrases, replacing extracted ones')
    hazards.add_argument('--signal-word', help='Danger or Warning, replacing the extracted one')

    task = parser.add_argument_group('task')
    task.add_argument('--procedure', help='Procedure name (see --list-procedures)')
    task.add_argument('--quantity', type=float, help='Amount handled per task')
    task.add_argument('--unit', default='mL', help=f'Unit of quantity: {", ".join(VALID_UNITS)} (default: mL)')
    task.add_argument('--frequency', default='', help='weekly, daily or multiple_daily')
    task.add_argument('--duration', default='', help='medium, long or very_long')
    task.add_argument('--quantity-group', help='Small, Medium or Large, overriding the quantity')
    task.add_argument('--physical-state', default='liquid', help='solid, liquid or gas (default: liquid)')
    task.add_argument('--dustiness', help='low, medium or high for solids')
    task.add_argument('--boiling-point', type=float, dest='boiling_point_c', help='Boiling point in °C')
    task.add_argument('--operating-temp', type=float, default=20.0, dest='operating_temp_c',
                      help='Operating temperature in °C (default: 20)')

    parser.add_argument('--inventory', help='Assess every record of an inventory JSON export')
    parser.add_argument('--wel-table', help='EH40 workplace exposure limits CSV')
    parser.add_argument('--output', '-o', help='Output file (JSON, or CSV for inventories)')
    parser.add_argument('--cache-dir', default='cache/', help='Extraction cache directory (default: cache/)')
    parser.add_argument('--no-cache', action='store_true', help='Disable extraction caching')
    parser.add_argument('--clear-cache', action='store_true', help='Clear extraction cache and exit')
    parser.add_argument('--list-procedures', action='store_true', help='List known procedures and exit')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    return parser


def task_options(args: argparse.Namespace) -> Dict[str, Any]:
    """Keyword arguments for RiskAssessor.assess taken from the command line"""
    return {
        'procedure': args.procedure,
        'quantity': args.quantity,
        'unit': args.unit,
        'frequency': args.frequency,
        'duration': args.duration,
        'quantity_group': args.quantity_group,
        'physical_state': args.physical_state,
        'dustiness': args.dustiness,
        'boiling_point_c': args.boiling_point_c,
        'operating_temp_c': args.operating_temp_c,
    }


def parse_phrase_list(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [phrase.strip() for phrase in value.split(',') if phrase.strip()]


def load_facts(document: Path, cache: Optional[ExtractionCache]) -> HazardFacts:
    """Extract hazard facts from a document, using the cache when enabled"""
    if cache:
        cached = cache.get(document)
        if cached is not None:
            print(f"Cache hit for: {document}")
            return cached

    print(f"Extracting hazard facts from: {document}")
    facts = extract_hazard_facts(load_document_text(document))
    if cache:
        cache.set(document, facts)
    return facts


def assess_document(args: argparse.Namespace, assessor: RiskAssessor,
                    cache: Optional[ExtractionCache]) -> Dict[str, Any]:
    """Assess a single substance from a document and/or command line hazards"""
    result: Dict[str, Any] = {}
    h_phrases = parse_phrase_list(args.h_phrases)
    signal_word = args.signal_word

    if args.document:
        facts = load_facts(Path(args.document), cache)
        facts = facts.with_overrides(h_phrases=h_phrases, signal_word=signal_word)
        result['document'] = args.document
        result['hazard_facts'] = facts.to_dict()
        result['needs_review'] = facts.needs_review()
        assessment = assessor.assess_facts(facts, **task_options(args))
    else:
        assessment = assessor.assess(h_phrases or [], signal_word or '', **task_options(args))

    result['assessment'] = assessment.to_dict()

    if args.wel_table:
        table = ExposureLimitTable.from_csv(args.wel_table)
        facts_dict = result.get('hazard_facts', {})
        name = facts_dict.get('chemical_name', {})
        cas = facts_dict.get('cas_number', {})
        limit = table.lookup(name=name.get('value', '') if name.get('found') else '',
                             cas_number=cas.get('value', ''))
        result['exposure_limits'] = limit.to_dict() if limit else None

    return result


def run_inventory(args: argparse.Namespace, assessor: RiskAssessor) -> int:
    records = load_inventory(args.inventory)
    options = task_options(args)
    options.pop('quantity')
    frame = assess_inventory(records, assessor, **options)

    if args.output and args.output.lower().endswith('.csv'):
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(output_path, index=False)
        print(f"Results saved to: {output_path}")
    else:
        write_result(json.loads(frame.to_json(orient='records')), args.output)

    print(f"\nInventory Summary:")
    print(f"  Records: {len(frame)}")
    for status, count in frame['status'].value_counts().items():
        print(f"  {status}: {count}")
    failed = int(frame['error'].notna().sum())
    if failed:
        print(f"  Not assessed: {failed}")
    return 0


def write_result(result: Any, output: Optional[str]):
    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"Results saved to: {output_path}")
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))


def list_procedures():
    knowledge = default_knowledge_base()
    print("Known procedures:")
    for name in knowledge.procedure_names():
        procedure = knowledge.get_procedure(name)
        print(f"  {name:<32} {procedure.description} [{procedure.volume_category}]")


def clear_cache(cache_dir: str):
    cache = ExtractionCache(cache_dir)
    stats_before = cache.get_cache_stats()
    cache.clear_cache()
    print(f"Cache cleared. Freed {stats_before['total_size_mb']} MB ({stats_before['total_files']} files)")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s %(name)s: %(message)s')

    if args.list_procedures:
        list_procedures()
        return 0

    if args.clear_cache:
        clear_cache(args.cache_dir)
        return 0

    if not (args.document or args.h_phrases or args.signal_word or args.inventory):
        parser.error('a document, --h-phrases, --signal-word or --inventory is required')

    assessor = RiskAssessor()

    try:
        if args.inventory:
            return run_inventory(args, assessor)

        cache = None if args.no_cache else ExtractionCache(args.cache_dir)
        write_result(assess_document(args, assessor, cache), args.output)
        return 0
    except CoshhError as e:
        print(f"Error: {e}")
        if args.verbose:
            logger.exception("Assessment failed")
        return 1
    except KeyboardInterrupt:
        print("\nProcessing interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
