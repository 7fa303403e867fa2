# test_control_banding.py
import pytest

from coshh.control_banding import RiskRating
from coshh.errors import InvalidArgument, NotFound, RangeViolation
from coshh.knowledge import CONTROL_BANDS, HAZARD_GROUPS, PHYSICAL_GROUPS, QUANTITY_GROUPS
from conftest import TestUtils


@pytest.mark.unit
class TestControlBand:
    """Hazard group x quantity group x physical group -> band"""

    @pytest.mark.parametrize("group", ["S", "E", "s", "e"])
    def test_specialist_groups_force_band_s(self, bander, group):
        for quantity in QUANTITY_GROUPS:
            for physical in PHYSICAL_GROUPS:
                assert bander.resolve_control_band(group, quantity, physical) == "S"

    def test_specialist_groups_ignore_other_arguments(self, bander):
        """Quantity and physical groups are not inspected for S and E"""
        assert bander.resolve_control_band("S", "Huge", "Unknown") == "S"
        assert bander.resolve_control_band("E", None, None) == "S"

    @pytest.mark.parametrize("group,quantity,physical,band", [
        ("A", "Small", "Low", "1"),
        ("A", "Large", "High", "2"),
        ("B", "Large", "Medium", "3"),
        ("C", "Small", "Low", "1"),
        ("C", "Small", "High", "2"),
        ("C", "Medium", "Medium", "3"),
        ("C", "Large", "High", "4"),
        ("D", "Small", "Low", "2"),
        ("D", "Medium", "High", "4"),
        ("d", "large", "low", "3"),
    ])
    def test_matrix(self, bander, group, quantity, physical, band):
        assert bander.resolve_control_band(group, quantity, physical) == band

    def test_idempotent(self, bander):
        TestUtils.assert_consistent_results(bander.resolve_control_band, ("C", "Medium", "High"))

    def test_every_combination_yields_known_band(self, bander):
        for group in HAZARD_GROUPS:
            for quantity in QUANTITY_GROUPS:
                for physical in PHYSICAL_GROUPS:
                    assert bander.resolve_control_band(group, quantity, physical) in CONTROL_BANDS

    def test_band_never_decreases_with_quantity(self, bander):
        for group in "ABCD":
            for physical in PHYSICAL_GROUPS:
                bands = [int(bander.resolve_control_band(group, q, physical)) for q in QUANTITY_GROUPS]
                assert bands == sorted(bands)

    @pytest.mark.parametrize("args", [
        ("F", "Small", "Low"),
        ("C", "Tiny", "Low"),
        ("C", "Small", "Extreme"),
        (3, "Small", "Low"),
        ("C", None, "Low"),
    ])
    def test_invalid_groups(self, bander, args):
        with pytest.raises(InvalidArgument):
            bander.resolve_control_band(*args)


@pytest.mark.unit
class TestControlBandProfile:
    """Band -> control measures"""

    @pytest.mark.parametrize("band", CONTROL_BANDS)
    def test_every_band_has_profile(self, bander, band):
        profile = bander.get_control_band_profile(band)
        assert profile.band == band
        assert profile.general_control
        assert profile.ppe_text

    def test_integer_and_lowercase_bands(self, bander):
        assert bander.get_control_band_profile(2).general_control == 'LEV200_201'
        assert bander.get_control_band_profile("s").general_control == 'Specialist400'

    @pytest.mark.parametrize("band", ["5", 0, "X", None, True, 2.0])
    def test_unknown_band(self, bander, band):
        with pytest.raises(NotFound):
            bander.get_control_band_profile(band)

    def test_not_found_is_lookup_error(self, bander):
        with pytest.raises(LookupError):
            bander.get_control_band_profile("7")

    def test_profile_to_dict(self, bander):
        data = bander.get_control_band_profile("1").to_dict()
        assert data == {
            'band': '1',
            'general_control': 'Ventilation100',
            'ppe_sheet': 'S100_S200',
            'ppe_text': 'Basic PPE: Lab coat, safety glasses. Check MSDS for glove type if skin contact likely.',
        }


@pytest.mark.unit
class TestQuantityGroup:

    @pytest.mark.parametrize("quantity,unit,group", [
        (500, 'mL', 'Small'),
        (999, 'g', 'Small'),
        (1000, 'g', 'Medium'),
        (1, 'kg', 'Medium'),
        (2.5, 'L', 'Medium'),
        (999, 'L', 'Medium'),
        (1000, 'L', 'Large'),
        (1000, 'kg', 'Large'),
        (5000, 'µL', 'Small'),
        (0, 'mg', 'Small'),
        (0.5, 'kg', 'Small'),
        (2000 * 1000, 'mg', 'Medium'),
        (1000 * 1000, 'mL', 'Large'),
    ])
    def test_quantity_group(self, bander, quantity, unit, group):
        assert bander.classify_quantity_group(quantity, unit) == group

    def test_invalid_quantity(self, bander):
        with pytest.raises(RangeViolation):
            bander.classify_quantity_group(-1, 'g')
        with pytest.raises(InvalidArgument):
            bander.classify_quantity_group(1, 'bottles')


@pytest.mark.unit
class TestPhysicalGroup:

    def test_gas_is_high(self, bander):
        assert bander.classify_physical_characteristics('gas') == 'High'

    @pytest.mark.parametrize("dustiness,group", [('low', 'Low'), ('Medium', 'Medium'), ('HIGH', 'High')])
    def test_solid_by_dustiness(self, bander, dustiness, group):
        assert bander.classify_physical_characteristics('solid', dustiness=dustiness) == group

    def test_solid_without_dustiness_is_high(self, bander):
        assert bander.classify_physical_characteristics('Solid') == 'High'

    @pytest.mark.parametrize("boiling_point,group", [
        (-42, 'High'),
        (40, 'High'),
        (56, 'Medium'),
        (100, 'Medium'),
        (150, 'Medium'),
        (151, 'Low'),
        (290, 'Low'),
    ])
    def test_liquid_by_volatility(self, bander, boiling_point, group):
        assert bander.classify_physical_characteristics('liquid', boiling_point_c=boiling_point) == group

    def test_liquid_volatility_depends_on_temperature(self, bander):
        assert bander.classify_physical_characteristics('liquid', boiling_point_c=100) == 'Medium'
        assert bander.classify_physical_characteristics(
            'liquid', boiling_point_c=100, operating_temp_c=60) == 'High'

    def test_liquid_without_boiling_point_is_high(self, bander):
        assert bander.classify_physical_characteristics('liquid') == 'High'

    def test_invalid_inputs(self, bander):
        with pytest.raises(InvalidArgument):
            bander.classify_physical_characteristics('plasma')
        with pytest.raises(InvalidArgument):
            bander.classify_physical_characteristics('solid', dustiness='fine')
        with pytest.raises(InvalidArgument):
            bander.classify_physical_characteristics('liquid', boiling_point_c='100')
        with pytest.raises(RangeViolation):
            bander.classify_physical_characteristics('liquid', boiling_point_c=-300)


@pytest.mark.unit
class TestRiskRating:

    @pytest.mark.parametrize("severity,likelihood,level", [
        (1, 0, 'Low'),
        (3, 3.3, 'Low'),
        (2, 5, 'Medium'),
        (5, 3.5, 'Medium'),
        (4, 5, 'High'),
        (5, 6, 'Very High'),
        (5, 10, 'Very High'),
    ])
    def test_levels(self, bander, severity, likelihood, level):
        assert bander.rate_risk(severity, likelihood).level == level

    def test_score(self, bander):
        assert bander.rate_risk(3, 2.4) == RiskRating(score=7.2, level='Low')

    @pytest.mark.parametrize("severity,likelihood,error", [
        (0, 5, RangeViolation),
        (6, 5, RangeViolation),
        (3, 10.5, RangeViolation),
        (3, -1, RangeViolation),
        (3.0, 5, InvalidArgument),
        (True, 5, InvalidArgument),
        (3, None, InvalidArgument),
    ])
    def test_invalid(self, bander, severity, likelihood, error):
        with pytest.raises(error):
            bander.rate_risk(severity, likelihood)
