"""Decision model & builder for the end-of-run summary.

Records *why* the pipeline took the path it took (charge origin, whether the
rescue branch ran and how it ended, where the final conformer set came from)
in one grouped log table, so a log reader does not have to reconstruct it
from interleaved tool output.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from confrescue.infra.step_logging import render_rows, tables_enabled


@dataclass(slots=True)
class DecisionModel:
    charge_origin: str  # 'manual' | 'detected' | 'none'
    charge: Optional[int]
    first_outcome: str  # GenerationOutcome value
    rescue_enabled: bool
    rescue_state: str  # RescueState value
    conformer_source: str  # 'confsearch' | 'confsearch (after rescue)' | 'rescue fallback' | 'stale/empty'
    conformer_count: int
    notes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def kv_pairs(self) -> list[tuple[str, str]]:
        return [
            ("charge.origin", self.charge_origin),
            ("charge.value", str(self.charge)),
            ("generation.first_outcome", self.first_outcome),
            ("rescue.enabled", str(self.rescue_enabled)),
            ("rescue.state", self.rescue_state),
            ("conformers.source", self.conformer_source),
            ("conformers.count", str(self.conformer_count)),
        ]

    def log(self, step: str) -> None:
        if tables_enabled():
            rows = self.kv_pairs() + [(f'note[{i}]', n) for i, n in enumerate(self.notes)]
            render_rows(f"[{step}][decisions]", "decision summary", rows, logging.info)
        else:
            logging.info(f"[{step}][decisions] " + ", ".join(f"{k}={v}" for k, v in self.kv_pairs()))
        for w in self.warnings:
            logging.warning(f"[{step}][warn] {w}")


def build_run_decision(
    *,
    charge_origin: str,
    charge: Optional[int],
    first_outcome: str,
    rescue_enabled: bool,
    rescue_state: str,
    fallback_used: bool,
    second_outcome: Optional[str],
    conformer_count: int,
) -> DecisionModel:
    notes: List[str] = []
    warnings: List[str] = []
    if charge_origin == 'none':
        warnings.append('no charge line detected; .CHRG not written, screening uses its default charge')
    if first_outcome == 'success':
        conformer_source = 'confsearch'
    elif rescue_state == 'not_triggered':
        conformer_source = 'stale/empty'
        if not rescue_enabled:
            warnings.append('conformer search reported zero conformers and rescue is disabled')
    elif fallback_used:
        conformer_source = 'rescue fallback'
        notes.append('second conformer search failed; using the rescue-optimised structure as the only conformer')
    else:
        conformer_source = 'confsearch (after rescue)'
        notes.append(f'second conformer search outcome={second_outcome}')
    if conformer_count == 0:
        warnings.append('conformer set is empty before screening')
    return DecisionModel(
        charge_origin=charge_origin,
        charge=charge,
        first_outcome=first_outcome,
        rescue_enabled=rescue_enabled,
        rescue_state=rescue_state,
        conformer_source=conformer_source,
        conformer_count=conformer_count,
        notes=notes,
        warnings=warnings,
    )


__all__ = [
    'DecisionModel',
    'build_run_decision',
]
