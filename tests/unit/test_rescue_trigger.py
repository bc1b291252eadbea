import pytest

from confrescue.domain.generation import GenerationOutcome
from confrescue.domain.rescue import RescueResult, RescueState, should_rescue
from confrescue.domain.generation import GenerationResult


@pytest.mark.parametrize(
    "outcome,enabled,expected",
    [
        (GenerationOutcome.ZERO_CONFORMERS, True, True),
        (GenerationOutcome.ZERO_CONFORMERS, False, False),
        (GenerationOutcome.SUCCESS, True, False),
        (GenerationOutcome.SUCCESS, False, False),
    ],
)
def test_should_rescue_truth_table(outcome, enabled, expected):
    assert should_rescue(outcome, enabled) is expected


def test_rescue_result_conformer_count():
    assert RescueResult(RescueState.NOT_TRIGGERED).conformer_count is None
    second = GenerationResult(GenerationOutcome.SUCCESS, "step2.mol", 4)
    assert RescueResult(RescueState.CONVERGED, second).conformer_count == 4
    failed = GenerationResult(GenerationOutcome.ZERO_CONFORMERS, "step2.mol", 0)
    assert RescueResult(RescueState.CONVERGED, failed, fallback_used=True).conformer_count == 1
