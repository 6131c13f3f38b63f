# src/paleosplice/cli/main.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import typer
from rich import print
from rich.table import Table

from paleosplice.chronology.tiepoints import TiePoint
from paleosplice.config.schema import RunConfig
from paleosplice.correlation.lag import correlate
from paleosplice.correlation.leadlag import lead_lag, proxy_regression
from paleosplice.correlation.peaks import find_correlation_peaks
from paleosplice.errors import PaleoSpliceError
from paleosplice.io.sections import attach_tie_points, load_intervals, load_sections, load_tie_points
from paleosplice.section import Section
from paleosplice.splice.composite import splice
from paleosplice.suggest.deterministic import CorrelationSuggester
from paleosplice.utils.config import load_run_config
from paleosplice.utils.logging import configure_logging

app = typer.Typer(add_completion=False, help="Depth-to-age calibration, lag correlation and composite splicing.")


def _setup(config: Optional[Path], log_level: Optional[str], overrides: Optional[Dict[str, Any]] = None) -> RunConfig:
    cfg = load_run_config(config, overrides=overrides)
    configure_logging(log_level or cfg.log_level)
    return cfg


def _fail(e: Exception) -> None:
    print(f"[red]Error:[/red] {type(e).__name__}: {e}")
    raise typer.Exit(code=1)


def _pick(sections: Dict[str, Section], sid: str) -> Section:
    if sid not in sections:
        raise KeyError(f"Unknown section {sid!r} (have: {sorted(sections)})")
    return sections[sid]


def _lag_overrides(max_lag: Optional[float], lag_step: Optional[float]) -> Dict[str, Any]:
    c: Dict[str, Any] = {}
    if max_lag is not None:
        c["max_lag"] = max_lag
    if lag_step is not None:
        c["lag_step"] = lag_step
    return {"correlation": c} if c else {}


def _peak_table(title: str, peaks: List[Any]) -> Table:
    t = Table(title=title)
    for col in ("lag", "r", "confidence", "sharpness"):
        t.add_column(col, justify="right")
    for p in peaks:
        t.add_row(f"{p.lag:g}", f"{p.coefficient:+.3f}", f"{p.confidence:.3f}", f"{p.sharpness:.3f}")
    return t


@app.command()
def calibrate(
    samples: Path = typer.Option(..., exists=True, help="CSV: section_id,depth,[section_name,qc_flag],proxy..."),
    tie_points: Path = typer.Option(..., exists=True, help="CSV: section_id,depth,age[,id]"),
    section: Optional[str] = typer.Option(None, help="Only this section (default: every calibratable one)"),
    out: Optional[Path] = typer.Option(None, help="Write the age-indexed samples as CSV"),
    config: Optional[Path] = typer.Option(None, help="YAML run config"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG / INFO / WARNING / ERROR"),
):
    cfg = _setup(config, log_level)
    try:
        secs = attach_tie_points(load_sections(samples), load_tie_points(tie_points))
        chosen = [_pick(secs, section)] if section else [s for s in secs.values() if s.is_calibratable]
        if not chosen:
            print("[yellow]No section has two or more tie points.[/yellow]")
            return

        frames = []
        for s in chosen:
            cal = s.calibrated(cfg=cfg.calibration)
            n_ex = int(cal.extrapolated.sum())
            print(f"{s.id}: {cal.n} samples | extrapolated: {n_ex} | reversals: {len(cal.warnings)}")
            for w in cal.warnings:
                print(f"[yellow]{w.message}[/yellow]")
            frames.append(cal.to_frame())
    except (PaleoSpliceError, KeyError, ValueError) as e:
        _fail(e)
        return

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        pd.concat(frames, ignore_index=True).to_csv(out, index=False)
        print("[green]Wrote[/green]", out)


@app.command("correlate")
def correlate_cmd(
    samples: Path = typer.Option(..., exists=True, help="CSV: section_id,depth,proxy..."),
    reference: str = typer.Option(..., help="Reference section id"),
    target: str = typer.Option(..., help="Target section id"),
    proxy: str = typer.Option(..., help="Proxy column to correlate"),
    max_lag: Optional[float] = typer.Option(None),
    lag_step: Optional[float] = typer.Option(None),
    top_k: int = typer.Option(3),
    out: Optional[Path] = typer.Option(None, help="Write the correlation curve as CSV"),
    config: Optional[Path] = typer.Option(None),
    log_level: Optional[str] = typer.Option(None),
):
    cfg = _setup(config, log_level, _lag_overrides(max_lag, lag_step))
    try:
        secs = load_sections(samples)
        ref = _pick(secs, reference)
        tgt = _pick(secs, target)
        curve = correlate(ref.series, tgt.series, proxy, cfg=cfg.correlation)
        peaks = find_correlation_peaks(curve, top_k=top_k, sharpness_half=cfg.suggest.sharpness_half)
    except (PaleoSpliceError, KeyError, ValueError) as e:
        _fail(e)
        return

    print(f"{len(curve)} lag(s) evaluated | grid step {curve.grid_step:g}")
    print(_peak_table(f"{target} vs {reference} ({proxy})", peaks))

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        curve.to_frame().to_csv(out, index=False)
        print("[green]Wrote[/green]", out)


@app.command()
def suggest(
    samples: Path = typer.Option(..., exists=True),
    reference: str = typer.Option(..., help="Reference section id"),
    target: str = typer.Option(..., help="Target section id"),
    proxy: str = typer.Option(...),
    tie_points: Optional[Path] = typer.Option(None, exists=True, help="Existing tie points; accepted suggestions are appended"),
    accept_top: int = typer.Option(0, help="Accept the N most confident suggestions"),
    out: Optional[Path] = typer.Option(None, help="Write the updated tie points as CSV (with --accept-top)"),
    config: Optional[Path] = typer.Option(None),
    log_level: Optional[str] = typer.Option(None),
):
    from paleosplice.suggest.accept import accept_suggestion

    cfg = _setup(config, log_level)
    try:
        secs = load_sections(samples)
        points: List[TiePoint] = load_tie_points(tie_points) if tie_points else []
        secs = attach_tie_points(secs, points)
        ref = _pick(secs, reference)
        tgt = _pick(secs, target)
        found = CorrelationSuggester(cfg.suggest).suggest(ref, tgt, proxy)

        t = Table(title=f"Suggested ties {reference} -> {target} ({proxy})")
        for col in ("ref depth", "target depth", "confidence", "lag"):
            t.add_column(col, justify="right")
        for s in found:
            t.add_row(f"{s.ref_position:g}", f"{s.target_position:g}", f"{s.confidence:.3f}", f"{s.lag:g}")
        print(t)

        rm = ref.age_model
        tm = tgt.age_model
        for s in found[: max(0, accept_top)]:
            res = accept_suggestion(s, rm, tm, depth_tolerance=cfg.accept.depth_tolerance)  # type: ignore[arg-type]
            rm, tm = res.reference_model, res.target_model
            print(f"[green]Accepted[/green] {s.ref_position:g} <-> {s.target_position:g} at {res.age:g} ka")
    except (PaleoSpliceError, KeyError, ValueError) as e:
        _fail(e)
        return

    if out is not None and accept_top > 0:
        others = [p for p in points if p.section_id not in (reference, target)]
        rows = [
            {"id": p.id, "section_id": p.section_id, "depth": p.depth, "age": p.age}
            for p in others + list(rm.tie_points) + list(tm.tie_points)  # type: ignore[union-attr]
        ]
        out.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(rows, columns=["id", "section_id", "depth", "age"]).to_csv(out, index=False)
        print("[green]Wrote[/green]", out)


@app.command("splice")
def splice_cmd(
    samples: Path = typer.Option(..., exists=True),
    tie_points: Path = typer.Option(..., exists=True),
    intervals: Path = typer.Option(..., exists=True, help="CSV: section_id,start_age,end_age"),
    out: Path = typer.Option(Path("out/composite.csv")),
    config: Optional[Path] = typer.Option(None),
    log_level: Optional[str] = typer.Option(None),
):
    cfg = _setup(config, log_level)
    try:
        secs = attach_tie_points(load_sections(samples), load_tie_points(tie_points))
        ivs = load_intervals(intervals)
        comp = splice(list(secs.values()), ivs, cfg=cfg.calibration)
    except (PaleoSpliceError, KeyError, ValueError) as e:
        _fail(e)
        return

    active = sum(1 for iv in ivs.values() if iv.is_active)
    print(f"Composite: {comp.n} samples from {active} interval(s)")
    out.parent.mkdir(parents=True, exist_ok=True)
    comp.to_frame().to_csv(out, index=False)
    print("[green]Wrote[/green]", out)


@app.command()
def leadlag(
    samples: Path = typer.Option(..., exists=True),
    section: str = typer.Option(...),
    proxy_a: str = typer.Option(...),
    proxy_b: str = typer.Option(...),
    max_lag: Optional[float] = typer.Option(None),
    lag_step: Optional[float] = typer.Option(None),
    config: Optional[Path] = typer.Option(None),
    log_level: Optional[str] = typer.Option(None),
):
    cfg = _setup(config, log_level, _lag_overrides(max_lag, lag_step))
    try:
        sec = _pick(load_sections(samples), section)
        res = lead_lag(sec.series, proxy_a, proxy_b, cfg=cfg.correlation)
        reg = proxy_regression(sec.series, proxy_a, proxy_b)
    except (PaleoSpliceError, KeyError, ValueError) as e:
        _fail(e)
        return

    print(_peak_table(f"{proxy_b} vs {proxy_a} in {section}", res.peaks))
    if res.best is not None:
        b = res.best
        if b.lag > 0:
            print(f"{proxy_b} lags {proxy_a} by {b.lag:g}")
        elif b.lag < 0:
            print(f"{proxy_b} leads {proxy_a} by {-b.lag:g}")
        else:
            print(f"{proxy_b} and {proxy_a} are in phase")
    print(f"Pearson r = {reg.r:+.3f} | R^2 = {reg.r_squared:.3f} | n = {reg.n}")


if __name__ == "__main__":
    app()
