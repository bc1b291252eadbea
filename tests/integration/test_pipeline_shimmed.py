from pathlib import Path

import pytest

from confrescue.config.loader import load_config
from confrescue.domain.generation import GenerationOutcome
from confrescue.domain.rescue import RescueState
from confrescue.errors import ToolExitError
from confrescue.pipeline.run import run_pipeline


def test_pipeline_result_after_rescue(shim_env, tmp_path: Path, monkeypatch):
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("SHIM_ZERO_FOR", "step1.mol")
    monkeypatch.setenv("SHIM_CHARGE", "1")
    cfg = load_config(work)

    result = run_pipeline(cfg, "C[NH3+]", cwd=work)

    assert result.charge.charge == 1
    assert result.first_generation.outcome is GenerationOutcome.ZERO_CONFORMERS
    assert result.rescue.state is RescueState.CONVERGED
    assert result.rescue.generation.structure == "step2.mol"
    assert result.conformer_count == 3
    assert result.context.structure == "step2.mol"
    assert result.screened == work / "crest_ensemble.xyz"
    assert (work / "rescue" / ".CHRG").read_text() == "1\n"


def test_pipeline_without_failure_skips_rescue(shim_env, tmp_path: Path):
    work = tmp_path / "work"
    work.mkdir()
    result = run_pipeline(load_config(work), "CCO", cwd=work)
    assert result.rescue.state is RescueState.NOT_TRIGGERED
    assert result.rescue.generation is None
    assert result.conformer_count == 3
    assert not (work / "rescue").exists()


def test_screening_failure_is_fatal(shim_env, tmp_path: Path, monkeypatch):
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("SHIM_CREST_EXIT", "3")
    with pytest.raises(ToolExitError) as ei:
        run_pipeline(load_config(work), "CCO", cwd=work)
    assert ei.value.returncode == 3
    assert "crest" in str(ei.value.cmd)
