import logging

from confrescue.infra.decisions import build_run_decision


def _decide(**kw):
    base = dict(
        charge_origin="detected",
        charge=0,
        first_outcome="success",
        rescue_enabled=True,
        rescue_state="not_triggered",
        fallback_used=False,
        second_outcome=None,
        conformer_count=3,
    )
    base.update(kw)
    return build_run_decision(**base)


def test_plain_success():
    d = _decide()
    assert d.conformer_source == "confsearch"
    assert d.warnings == []
    assert d.notes == []


def test_rescued_search():
    d = _decide(first_outcome="zero_conformers", rescue_state="converged", second_outcome="success", conformer_count=5)
    assert d.conformer_source == "confsearch (after rescue)"
    assert d.notes == ["second conformer search outcome=success"]


def test_rescue_fallback():
    d = _decide(
        first_outcome="zero_conformers",
        rescue_state="converged",
        fallback_used=True,
        second_outcome="zero_conformers",
        conformer_count=1,
    )
    assert d.conformer_source == "rescue fallback"
    assert d.warnings == []


def test_disabled_rescue_and_missing_charge_warn():
    d = _decide(
        charge_origin="none",
        charge=None,
        first_outcome="zero_conformers",
        rescue_enabled=False,
        conformer_count=0,
    )
    assert d.conformer_source == "stale/empty"
    assert len(d.warnings) == 3


def test_log_table_and_line_modes(caplog, monkeypatch):
    caplog.set_level(logging.INFO)
    d = _decide()
    d.log("run")
    assert any("── decision summary ──" in r.message for r in caplog.records)
    assert any("conformers.source" in r.message and "confsearch" in r.message for r in caplog.records)

    caplog.clear()
    monkeypatch.setenv("CONFRESCUE_LOG_TABLE", "0")
    d.log("run")
    msgs = [r.message for r in caplog.records]
    assert len(msgs) == 1
    assert "charge.origin=detected" in msgs[0]
