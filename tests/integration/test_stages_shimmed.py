from pathlib import Path

import pytest

from confrescue.config.loader import load_config
from confrescue.domain.charge import extract_charge
from confrescue.domain.context import PipelineContext
from confrescue.domain.generation import GenerationOutcome, generate_conformers
from confrescue.domain.inputs import build_initial_structure
from confrescue.errors import InvalidInputError, ToolExitError


@pytest.fixture()
def work(tmp_path: Path) -> Path:
    d = tmp_path / "work"
    d.mkdir()
    (d / "input.smi").write_text("CCO\n")
    return d


def _ctx(work: Path) -> PipelineContext:
    return PipelineContext(workdir=work, input_file="input.smi")


def test_build_initial_structure(shim_env, work):
    cfg = load_config(work)
    ctx = _ctx(work)
    build_initial_structure(ctx, cfg)
    assert (work / "step1.mol").read_text().startswith("converted from input.smi")
    assert "obabel input.smi -O step1.mol --gen3d --minimize --ff uff" in shim_env.read_text()


def test_build_rejects_unparsable_input_even_with_stale_output(shim_env, work):
    (work / "input.smi").write_text("INVALID\n")
    (work / "step1.mol").write_text("stale from an earlier run\n")
    with pytest.raises(InvalidInputError):
        build_initial_structure(_ctx(work), load_config(work))
    assert not (work / "step1.mol").exists()


def test_charge_manual_override_skips_detection(shim_env, work):
    (work / "step1.mol").write_text("mol\n")
    cfg = load_config(work, overrides={"run": {"charge": "-2"}})
    result = extract_charge(_ctx(work), cfg)
    assert (result.charge, result.origin) == (-2, "manual")
    assert (work / ".CHRG").read_text() == "-2\n"
    assert not shim_env.exists() or "-ogzmat" not in shim_env.read_text()


def test_charge_detected_from_first_matching_line(shim_env, work, monkeypatch, capsys):
    monkeypatch.setenv("SHIM_CHARGE", "-1")
    (work / "step1.mol").write_text("mol\n")
    result = extract_charge(_ctx(work), load_config(work))
    assert (result.charge, result.origin) == (-1, "detected")
    assert (work / ".CHRG").read_text() == "-1\n"
    # the whole stream reached the terminal, including the later "7  2" line
    assert "7  2" in capsys.readouterr().out


def test_charge_not_found_leaves_no_file(shim_env, work, monkeypatch):
    monkeypatch.setenv("SHIM_NO_CHARGE", "1")
    (work / "step1.mol").write_text("mol\n")
    result = extract_charge(_ctx(work), load_config(work))
    assert (result.charge, result.origin) == (None, "none")
    assert not (work / ".CHRG").exists()


def test_generation_success_counts_frames(shim_env, work, monkeypatch):
    monkeypatch.setenv("SHIM_CONFS", "4")
    (work / "step1.mol").write_text("mol\n")
    cfg = load_config(work, overrides={"run": {"nconfs": 4, "forcefield": "mmff94"}})
    res = generate_conformers(_ctx(work), cfg)
    assert res.outcome is GenerationOutcome.SUCCESS
    assert res.conformer_count == 4
    assert "obabel step1.mol -O confs.xyz --conformer --nconf 4 --ff mmff94 --writeconformers" in shim_env.read_text()


def test_generation_zero_marker_with_exit_zero(shim_env, work, monkeypatch):
    monkeypatch.setenv("SHIM_ZERO_FOR", "step1.mol")
    (work / "step1.mol").write_text("mol\n")
    res = generate_conformers(_ctx(work), load_config(work))
    assert res.outcome is GenerationOutcome.ZERO_CONFORMERS
    assert res.conformer_count == 0


def test_generation_abnormal_exit_is_fatal(shim_env, work, monkeypatch):
    monkeypatch.setenv("SHIM_CONF_EXIT", "5")
    (work / "step1.mol").write_text("mol\n")
    with pytest.raises(ToolExitError) as ei:
        generate_conformers(_ctx(work), load_config(work))
    assert ei.value.returncode == 5
