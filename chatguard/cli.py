"""chatguard CLI — inspect the filter, the classifier and the send gate."""

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from chatguard import __version__
from chatguard.config import load_config
from chatguard.errors import ChatGuardError

console = Console()

_SEVERITY_STYLE = {"low": "green", "medium": "yellow", "high": "red"}


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default=None, help="Path to a chatguard YAML config")
@click.option("--verbose", "-v", is_flag=True, help="Log decisions to stderr")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """chatguard — rate limiting and content moderation for chat messages."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    try:
        ctx.obj = load_config(config_path)
    except ChatGuardError as e:
        raise click.ClickException(str(e))


# ── Scan ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.pass_obj
def scan(config, text: str):
    """Run the local lexicon filter on TEXT."""
    from chatguard.moderation.content_filter import ContentFilter

    verdict = ContentFilter(config.content_filter).scan(text)
    status = "[green]clean[/]" if verdict.is_clean else "[red]flagged[/]"
    console.print(f"\n  Status:   {status}")
    console.print(f"  Masked:   {verdict.masked_text}")
    console.print(f"  Language: {verdict.detected_language}")
    console.print(f"  Source:   {verdict.source.value}")
    if verdict.matched_terms:
        console.print(f"  Matched:  {', '.join(sorted(verdict.matched_terms))}")


# ── Moderate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--remote/--no-remote", default=None, help="Force the remote classifier on or off")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_obj
def moderate(config, text: str, remote: bool | None, as_json: bool):
    """Run the full moderation pipeline on TEXT and print the report."""
    from dataclasses import asdict

    from chatguard.moderation.classifier import build_classifier
    from chatguard.moderation.content_filter import ContentFilter
    from chatguard.moderation.orchestrator import ModerationOrchestrator

    if remote is not None:
        config.moderation.remote_enabled = remote

    orchestrator = ModerationOrchestrator(
        ContentFilter(config.content_filter),
        classifier=build_classifier(config.moderation),
        config=config.moderation,
    )
    report = asyncio.run(orchestrator.review(text))

    if as_json:
        data = asdict(report)
        data["severity"] = report.severity.value
        data["source"] = report.source.value
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    style = _SEVERITY_STYLE[report.severity.value]
    lines = [
        f"Clean:      {report.is_clean}",
        f"Severity:   [{style}]{report.severity.value}[/]",
        f"Confidence: {report.confidence:.2f}",
        f"Language:   {report.language}",
        f"Source:     {report.source.value}",
        f"Masked:     {report.masked_text}",
    ]
    console.print(Panel("\n".join(lines), title="Moderation Report"))
    if report.warning:
        console.print(f"  [yellow]![/] {report.warning}")
    for rec in report.recommendations:
        console.print(f"  - {rec}")


# ── Language ─────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
def language(text: str):
    """Detect the dominant script of TEXT."""
    from chatguard.moderation.language import LANGUAGE_NAMES, detect_language, script_counts

    tag = detect_language(text)
    counts = script_counts(text)
    console.print(f"  {tag} ({LANGUAGE_NAMES[tag]})")
    console.print(
        f"  [dim]latin={counts['en']} devanagari={counts['hi']} gujarati={counts['gu']}[/]"
    )


# ── Lexicon ──────────────────────────────────────────────────────────


@main.command()
@click.option("--locale", "-l", default=None, help="Only show one locale")
@click.pass_obj
def lexicon(config, locale: str | None):
    """List lexicon entries."""
    from chatguard.moderation.lexicon import build_lexicon

    cfg = config.content_filter
    lex = build_lexicon(
        additional_terms=cfg.additional_terms,
        whitelist=cfg.whitelist,
        lexicon_path=cfg.lexicon_path,
        include_abbreviations=cfg.filter_abbreviations,
    )
    entries = lex.entries(locale)
    if not entries:
        console.print("[yellow]No lexicon entries.[/]")
        return

    table = Table(title=f"Lexicon ({len(entries)} entries, {len(lex.whitelist)} whitelisted words)")
    table.add_column("Locale", style="dim")
    table.add_column("Category")
    table.add_column("Term", style="cyan")
    table.add_column("Variants")
    table.add_column("Embedded", justify="center")
    for entry in sorted(entries, key=lambda e: (e.locale, e.category, e.term)):
        table.add_row(
            entry.locale,
            entry.category,
            entry.term,
            ", ".join(entry.variants),
            "Y" if entry.embedded else "",
        )
    console.print(table)


# ── Simulate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("identity")
@click.option("--count", "-n", default=12, show_default=True, help="Number of send attempts")
@click.option("--interval", "-i", default=0.5, show_default=True, help="Seconds between attempts")
@click.pass_obj
def simulate(config, identity: str, count: int, interval: float):
    """Replay a burst of sends by IDENTITY against the rate limiter."""
    from chatguard.ratelimit.limiter import RateLimiter

    limiter = RateLimiter(config.rate_limit)
    table = Table(title=f"Burst simulation for {identity}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("t (s)", justify="right")
    table.add_column("Decision")
    table.add_column("Remaining", justify="right")
    table.add_column("Cooldown", justify="right")

    for n in range(count):
        now = n * interval
        decision = limiter.check_send(identity, now=now)
        status = limiter.status(identity, now=now)
        verdict = "[green]allowed[/]" if decision.allowed else "[red]blocked[/]"
        table.add_row(
            str(n + 1),
            f"{now:.1f}",
            verdict,
            str(status.remaining),
            f"{decision.cooldown_seconds}s" if not decision.allowed else "",
        )
    console.print(table)


# ── Config ───────────────────────────────────────────────────────────


@main.command(name="config")
@click.pass_obj
def show_config(config):
    """Print the effective configuration as JSON."""
    click.echo(json.dumps(config.to_dict(), indent=2))


if __name__ == "__main__":
    main()
