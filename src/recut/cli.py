"""recut CLI entry point.

Runs one remap-and-assemble job from a cut plan: cut the source video down
to its keep segments, retime the transcript onto the edited timeline and
write SRT/VTT subtitles next to the output.  Typed pipeline errors are
rendered as Rich panels with exit code 1; a safety fallback (original copied
unedited) still exits 0.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from recut.config import config_from_env
from recut.errors import RecutError
from recut.manifest.store import JsonManifestStore
from recut.pipeline import JobOutcome, JobRequest, run_job

app = typer.Typer(
    name="recut",
    help="Cut a video down to its keep segments and retime its subtitles to match.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command()
def main(
    plan: Annotated[
        Path,
        typer.Argument(
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Cut plan JSON file.",
        ),
    ],
    transcript: Annotated[
        Optional[Path],
        typer.Option(
            "--transcript", "-t",
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Transcript (JSON segments, SRT, VTT or ASS) to retime onto the edited video.",
        ),
    ] = None,
    source: Annotated[
        Optional[Path],
        typer.Option("--source", "-s", resolve_path=True, help="Source video (overrides the plan)."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", resolve_path=True, help="Output video (overrides the plan)."),
    ] = None,
    fps: Annotated[
        Optional[float],
        typer.Option("--fps", help="Target frame rate for extraction and frame snapping (default 30)."),
    ] = None,
    pad: Annotated[
        Optional[float],
        typer.Option("--pad", help="Seconds of padding kept around each cut boundary (default 0.3)."),
    ] = None,
    merge_gap: Annotated[
        Optional[float],
        typer.Option("--merge-gap", help="Merge keep segments separated by less than this (default 0.5s)."),
    ] = None,
    min_keep_ratio: Annotated[
        Optional[float],
        typer.Option("--min-keep-ratio", help="Copy the original if less than this share is kept (default 0.2)."),
    ] = None,
    concurrency: Annotated[
        Optional[int],
        typer.Option("--concurrency", "-j", help="Parallel segment extractions (default 4)."),
    ] = None,
    srt: Annotated[
        Optional[bool],
        typer.Option("--srt/--no-srt", help="Write <output>.srt."),
    ] = None,
    vtt: Annotated[
        Optional[bool],
        typer.Option("--vtt/--no-vtt", help="Write <output>.vtt."),
    ] = None,
    manifest_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--manifest-dir",
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Record the job result in <DIR>/<job-ref>.manifest.json.",
        ),
    ] = None,
    job_ref: Annotated[
        Optional[str],
        typer.Option("--job-ref", help="Job reference for the manifest (default: plan file stem)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log every FFmpeg/ffprobe command line."),
    ] = False,
) -> None:
    """Apply a cut plan to a video and retime its transcript."""
    _configure_logging(verbose)

    if job_ref is not None and manifest_dir is None:
        err_console.print(Panel(
            "--job-ref only applies together with --manifest-dir.",
            title="[red]Input Error[/red]",
            border_style="red",
        ))
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]recut[/bold cyan] [dim]{plan.name}[/dim]\n")

    try:
        config = config_from_env(
            target_fps=fps,
            pad_seconds=pad,
            merge_gap_seconds=merge_gap,
            min_keep_ratio=min_keep_ratio,
            extraction_concurrency=concurrency,
            write_srt=srt,
            write_vtt=vtt,
        )
        store = None
        if manifest_dir is not None:
            store = JsonManifestStore(manifest_dir)
            if job_ref is not None:
                try:
                    store.path_for(job_ref)
                except ValueError as e:
                    err_console.print(Panel(
                        f"{e}\nUse letters, digits, '.', '_' and '-' only.",
                        title="[red]Input Error[/red]",
                        border_style="red",
                    ))
                    raise typer.Exit(1)
            manifest_dir.mkdir(parents=True, exist_ok=True)

        request = JobRequest(
            plan_path=plan,
            transcript_path=transcript,
            source=source,
            output=output,
            job_ref=job_ref,
        )
        with console.status("Cutting and retiming..."):
            outcome = run_job(request, config, store=store)
    except RecutError as e:
        err_console.print(Panel(
            str(e),
            title=f"[red]Pipeline Error[/red] [dim]{e.code}[/dim]",
            border_style="red",
        ))
        raise typer.Exit(1)

    _print_summary(outcome)


def _print_summary(outcome: JobOutcome) -> None:
    assembly = outcome.assembly
    if assembly.is_fallback:
        console.print(Panel(
            f"[bold yellow]Original copied unedited[/bold yellow]\n\n"
            f"  Reason:   {assembly.fallback_reason.value}\n"
            f"  Output:   [dim]{assembly.output_path}[/dim]\n"
            f"  Duration: {assembly.final_duration_sec:.2f}s",
            title="[yellow]Safety Fallback[/yellow]",
            border_style="yellow",
        ))
        return

    retimed = outcome.retimed
    subtitle_lines = "".join(
        f"  {fmt.upper()}:      [dim]{path}[/dim]\n" for fmt, path in outcome.subtitle_paths.items()
    )
    dropped = retimed.dropped_segment_count if retimed else 0
    console.print(Panel(
        f"[bold green]Edit complete[/bold green]\n\n"
        f"  Output:   [dim]{assembly.output_path}[/dim]\n"
        f"  Cuts:     {outcome.cut_count} applied, {assembly.segment_count} segment(s) kept\n"
        f"  Duration: {outcome.source_duration_sec:.2f}s -> "
        f"{assembly.final_duration_sec:.2f}s\n"
        f"  Cues:     {len(retimed.segments) if retimed else 0} ({dropped} dropped)\n"
        + subtitle_lines,
        title="[green]Video Ready[/green]",
        border_style="green",
    ))


if __name__ == "__main__":
    app()
