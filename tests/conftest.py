# conftest.py - Pytest configuration and shared fixtures
import json

import pytest

from coshh.assessment import RiskAssessor
from coshh.control_banding import ControlBander
from coshh.hazard_classifier import HazardClassifier
from coshh.knowledge import ProcedureProfile, default_knowledge_base
from coshh.likelihood import LikelihoodCalculator

# Sample SDS text for testing
SAMPLE_SDS_TEXT = """
SAFETY DATA SHEET
Acetone

SECTION 1: Identification of the substance/mixture and of the company/undertaking
1.1 Product identifier
Product name : Acetone
Product Number : 179124
Brand : Sigma-Aldrich

SECTION 2: Hazards identification
Signal word Danger
Hazard statement(s)
H225 Highly flammable liquid and vapour.
H319 Causes serious eye irritation.
H336 May cause drowsiness or dizziness.
Precautionary statement(s)
P210 Keep away from heat, hot surfaces, sparks, open flames.
P305 + P351 + P338 IF IN EYES: Rinse cautiously with water for several minutes.

SECTION 3: Composition/information on ingredients
Chemical Name CAS No Weight %
Acetone 67-64-1 98-100

SECTION 4: First aid measures
If inhaled: move person into fresh air.
In case of skin contact: Wash off with soap and plenty of water.

SECTION 5: Firefighting measures
Use water spray, alcohol-resistant foam, dry chemical or carbon dioxide.

SECTION 6: Accidental release measures
Contain spillage and collect with an electrically protected vacuum cleaner.

SECTION 7: Handling and storage
Keep container tightly closed in a dry and well-ventilated place.

SECTION 8: Exposure controls/personal protection
Use local exhaust ventilation.

SECTION 13: Disposal considerations
Waste material must be disposed of in accordance with national and local regulations.
Leave chemicals in original containers.

SECTION 14: Transport information
UN number: 1090
"""

SAMPLE_INVENTORY = {
    "lastUpdated": "2024-05-01T09:00:00Z",
    "totalChemicals": 4,
    "inventory": [
        {
            "id": 101,
            "name": "Acetone",
            "casNumber": "67-64-1",
            "size": "2.5",
            "units": "L",
            "hazardStatements": ["H225", "H319", "H336"],
            "customFields": {"coshhRequired": "Yes"}
        },
        {
            "id": 102,
            "name": "Formaldehyde solution",
            "casNumber": "50-00-0",
            "size": "500",
            "units": "mL",
            "hazardStatements": ["H301+H311+H331", "H350"],
            "customFields": {"coshhCompleted": "Yes"}
        },
        {
            "id": 103,
            "name": "Sodium chloride",
            "casNumber": "7647-14-5",
            "size": "1",
            "units": "kg",
            "hazardStatements": [],
            "customFields": {}
        },
        {
            "id": 104,
            "name": "Ethanol",
            "casNumber": "64-17-5",
            "size": "4",
            "units": "bottles",
            "hazardStatements": ["H225 Highly flammable liquid and vapour"]
        }
    ]
}

SAMPLE_WEL_CSV = """Substance,CAS number,LTE ppm,LTE mg/m3,STE ppm,STE mg/m3
Acetone,67-64-1,500,1210,1500,3620
Ethanol,64-17-5,1000,1920,-,-
Formaldehyde,50-00-0,2,2.5,2,2.5
Sodium hydroxide,1310-73-2,-,-,-,2
Broken row,1-2-3
"""


@pytest.fixture
def sample_sds_text():
    """Fixture providing sample SDS text content"""
    return SAMPLE_SDS_TEXT


@pytest.fixture
def knowledge():
    return default_knowledge_base()


@pytest.fixture
def classifier(knowledge):
    return HazardClassifier(knowledge)


@pytest.fixture
def calculator(knowledge):
    return LikelihoodCalculator(knowledge)


@pytest.fixture
def bander(knowledge):
    return ControlBander(knowledge)


@pytest.fixture
def assessor(knowledge):
    return RiskAssessor(knowledge)


@pytest.fixture
def pipetting(knowledge):
    return knowledge.get_procedure('pipetting_small')


@pytest.fixture
def worst_procedure():
    """Procedure with maximal exposure and aerosol factors"""
    return ProcedureProfile(name='worst_case', description='Open spraying', volume_category='Large',
                            exposure_factor=1.0, aerosol_factor=1.0, routes=('Inhalation',))


@pytest.fixture
def inventory_file(tmp_path):
    """Fixture writing the sample inventory export to disk"""
    path = tmp_path / "chemical-inventory.json"
    path.write_text(json.dumps(SAMPLE_INVENTORY), encoding='utf-8')
    return path


@pytest.fixture
def inventory_records():
    return json.loads(json.dumps(SAMPLE_INVENTORY["inventory"]))


@pytest.fixture
def wel_csv(tmp_path):
    """Fixture writing a small EH40 table to disk"""
    path = tmp_path / "eh40_table.csv"
    path.write_text(SAMPLE_WEL_CSV, encoding='utf-8')
    return path


@pytest.fixture
def sds_file(tmp_path):
    path = tmp_path / "acetone_sds.txt"
    path.write_text(SAMPLE_SDS_TEXT, encoding='utf-8')
    return path


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "performance: Performance tests")
    config.addinivalue_line("markers", "smoke: Smoke tests")


class TestUtils:
    """Utility class for test helpers"""

    @staticmethod
    def assert_consistent_results(func, args, iterations=5):
        """Assert that a function produces consistent results across multiple calls"""
        results = []
        for _ in range(iterations):
            result = func(*args)
            results.append(json.dumps(result, sort_keys=True) if isinstance(result, (dict, list)) else result)

        assert all(r == results[0] for r in results), "Function produced inconsistent results"
