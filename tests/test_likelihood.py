# test_likelihood.py
import math

import pytest

from coshh.errors import InvalidArgument, RangeViolation
from coshh.knowledge import ProcedureProfile
from coshh.likelihood import canonical_unit, likelihood_band
from conftest import TestUtils


@pytest.mark.unit
class TestLikelihoodScore:
    """Likelihood from procedure, quantity, frequency and duration"""

    def test_no_procedure_base(self, calculator):
        """Missing procedure contributes a moderate base"""
        assert calculator.calculate_likelihood(None, 0, 'mL') == pytest.approx(1.5)

    def test_procedure_base(self, calculator, pipetting):
        assert calculator.calculate_likelihood(pipetting, 0, 'mL') == pytest.approx(0.3 * 3 + 0.2 * 2)

    def test_components_add(self, calculator, pipetting):
        score = calculator.calculate_likelihood(pipetting, 20, 'mL', 'daily', 'long')
        assert score == pytest.approx(1.3 + 1 + 2 + 2)

    @pytest.mark.parametrize("quantity,unit,points", [
        (1, 'mL', 0),
        (1.5, 'mL', 1),
        (50, 'mg', 1),
        (51, 'mg', 2),
        (500, 'mL', 2),
        (501, 'mL', 3),
        (1, 'g', 3),
        (900, 'µL', 0),
    ])
    def test_quantity_thresholds(self, calculator, quantity, unit, points):
        assert calculator.calculate_likelihood(None, quantity, unit) == pytest.approx(1.5 + points)

    def test_saturates_at_ten(self, calculator, worst_procedure):
        score = calculator.calculate_likelihood(worst_procedure, 1, 'kg', 'multiple_daily', 'very_long')
        assert score == 10.0

    @pytest.mark.parametrize("frequency,duration", [
        ('', ''),
        ('weekly', 'medium'),
        ('daily', 'long'),
        ('multiple_daily', 'very_long'),
        ('hourly', 'forever'),
    ])
    def test_result_in_range(self, calculator, worst_procedure, pipetting, frequency, duration):
        for procedure in (None, pipetting, worst_procedure):
            for quantity, unit in ((0, 'mL'), (5, 'L'), (3, 'µg')):
                score = calculator.calculate_likelihood(procedure, quantity, unit, frequency, duration)
                assert 0.0 <= score <= 10.0

    def test_unknown_frequency_and_duration_score_zero(self, calculator):
        assert calculator.calculate_likelihood(None, 0, 'mL', 'hourly', 'forever') == pytest.approx(1.5)

    def test_frequency_and_duration_case_insensitive(self, calculator):
        assert calculator.calculate_likelihood(None, 0, 'mL', 'Daily', ' LONG ') == pytest.approx(5.5)

    def test_monotone_in_quantity(self, calculator, pipetting):
        scores = [calculator.calculate_likelihood(pipetting, q, 'mL', 'daily', '')
                  for q in (0, 1, 2, 50, 60, 500, 600, 10000)]
        assert scores == sorted(scores)

    def test_monotone_in_frequency_and_duration(self, calculator, pipetting):
        frequencies = ['', 'weekly', 'daily', 'multiple_daily']
        durations = ['', 'medium', 'long', 'very_long']
        by_frequency = [calculator.calculate_likelihood(pipetting, 10, 'mL', f, '') for f in frequencies]
        by_duration = [calculator.calculate_likelihood(pipetting, 10, 'mL', '', d) for d in durations]
        assert by_frequency == sorted(by_frequency)
        assert by_duration == sorted(by_duration)
        assert len(set(by_frequency)) == 4
        assert len(set(by_duration)) == 4

    def test_monotone_in_aerosol_factor(self, calculator):
        """More aerosol generation means a strictly higher score until capped"""
        scores = []
        for aerosol in (0.0, 0.25, 0.5, 0.75, 1.0):
            procedure = ProcedureProfile(name='spraying', description='Spraying', volume_category='Small',
                                         exposure_factor=0.5, aerosol_factor=aerosol)
            scores.append(calculator.calculate_likelihood(procedure, 10, 'mL', 'weekly', 'medium'))
        assert all(lower < higher for lower, higher in zip(scores, scores[1:]))

    def test_idempotent(self, calculator, pipetting):
        TestUtils.assert_consistent_results(calculator.calculate_likelihood,
                                            (pipetting, 250, 'mL', 'daily', 'long'))


@pytest.mark.unit
class TestUnits:
    """Unit normalization onto the shared mg/mL scale"""

    @pytest.mark.parametrize("left,right", [
        ((1000, 'mg'), (1, 'g')),
        ((1000, 'mL'), (1, 'L')),
        ((1000, 'µg'), (1, 'mg')),
        ((1000, 'µL'), (1, 'mL')),
    ])
    def test_equivalent_quantities(self, calculator, left, right):
        assert calculator.normalize_quantity(*left) == pytest.approx(calculator.normalize_quantity(*right))

    @pytest.mark.parametrize("left,right", [
        ((1000, 'mg'), (1, 'g')),
        ((1000, 'mL'), (1, 'L')),
        ((1000, 'µL'), (1, 'mL')),
        ((1000, 'µg'), (1, 'mg')),
        ((1, 'kg'), (1000, 'g')),
    ])
    def test_equivalent_quantities_score_the_same(self, calculator, pipetting, left, right):
        for frequency, duration in (('', ''), ('daily', 'long')):
            assert calculator.calculate_likelihood(pipetting, *left, frequency, duration) == \
                calculator.calculate_likelihood(pipetting, *right, frequency, duration)

    @pytest.mark.parametrize("quantity,points", [(0.0005, 0), (0.01, 1), (0.04, 1), (0.1, 2), (0.5, 2), (0.6, 3)])
    def test_kilograms_share_the_gram_scale(self, calculator, quantity, points):
        """Kilograms scale by 1000 like grams, so small kg amounts score low"""
        assert calculator.calculate_likelihood(None, quantity, 'kg') == pytest.approx(1.5 + points)

    def test_hundredth_of_a_kilogram(self, calculator):
        assert calculator.calculate_likelihood(None, 0.01, 'kg') == 2.5

    @pytest.mark.parametrize("alias,expected", [
        ('ug', 'µg'), ('μg', 'µg'), ('ul', 'µL'), ('uL', 'µL'), ('ml', 'mL'), ('l', 'L'), (' g ', 'g'),
    ])
    def test_aliases(self, alias, expected):
        assert canonical_unit(alias) == expected

    @pytest.mark.parametrize("unit", ['lb', 'bottles', '', 'MG'])
    def test_unknown_unit(self, calculator, unit):
        with pytest.raises(InvalidArgument):
            calculator.calculate_likelihood(None, 10, unit)

    def test_unit_must_be_string(self, calculator):
        with pytest.raises(InvalidArgument):
            calculator.normalize_quantity(10, None)


@pytest.mark.unit
class TestInvalidInput:
    """Argument validation"""

    def test_negative_quantity(self, calculator):
        with pytest.raises(RangeViolation):
            calculator.calculate_likelihood(None, -1, 'mL')

    def test_range_violation_is_value_error(self, calculator):
        with pytest.raises(ValueError):
            calculator.calculate_likelihood(None, -0.5, 'g')

    @pytest.mark.parametrize("quantity", [math.nan, math.inf, "10", None, True])
    def test_non_numeric_quantity(self, calculator, quantity):
        with pytest.raises(InvalidArgument):
            calculator.calculate_likelihood(None, quantity, 'mL')

    def test_procedure_type(self, calculator):
        with pytest.raises(InvalidArgument):
            calculator.calculate_likelihood('pipetting_small', 10, 'mL')

    @pytest.mark.parametrize("frequency,duration", [(None, ''), ('', 3)])
    def test_frequency_and_duration_types(self, calculator, frequency, duration):
        with pytest.raises(InvalidArgument):
            calculator.calculate_likelihood(None, 10, 'mL', frequency, duration)


@pytest.mark.unit
class TestLikelihoodBand:

    @pytest.mark.parametrize("score,band", [
        (0, 'Very Low'),
        (2.99, 'Very Low'),
        (3, 'Low to Moderate'),
        (6, 'High'),
        (8.9, 'High'),
        (9, 'Very High'),
        (10, 'Very High'),
    ])
    def test_band(self, score, band):
        assert likelihood_band(score) == band
