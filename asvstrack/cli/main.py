"""Command line interface for asvstrack."""

import asyncio
import json
import logging
from pathlib import Path

import click

from asvstrack.aggregation import LevelPolicy, status_band
from asvstrack.demo_data import sample_templates, seed_sections
from asvstrack.errors import AsvsTrackError
from asvstrack.models import slugify
from asvstrack.persistence import create_store
from asvstrack.registry import RequirementRegistry, load_templates_from_yaml
from asvstrack.reporting import (
    dashboard_payload,
    export_pdf,
    load_dashboard,
    filter_sections,
    render_markdown,
    report_filename,
)
from asvstrack.tracing import setup_tracing
from config.settings import settings

SAMPLE_SECTION_SLUG = "architecture"


def _run(coro):
    """Run a coroutine, turning domain and configuration errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except (AsvsTrackError, RuntimeError) as e:
        raise click.ClickException(str(e))


async def _get_registry(backend: str | None) -> RequirementRegistry:
    store = await create_store(backend)
    return RequirementRegistry(
        store,
        search_limit=settings.search_limit,
        min_query_chars=settings.search_min_chars,
    )


@click.group()
@click.option(
    "--backend",
    type=click.Choice(["supabase", "sql"]),
    default=None,
    help="Store backend (defaults to STORE_BACKEND)",
)
@click.pass_context
def cli(ctx: click.Context, backend: str | None):
    """Track OWASP ASVS Level 1 compliance."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    if settings.tracing_enabled:
        setup_tracing(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["backend"] = backend


# ============ Sections ============

@cli.group()
def sections():
    """Manage ASVS sections."""


@sections.command("list")
@click.pass_context
def list_sections(ctx: click.Context):
    """List sections in display order."""

    async def _list():
        registry = await _get_registry(ctx.obj["backend"])
        return await registry.list_sections()

    found = _run(_list())
    if not found:
        click.echo("No sections. Run `asvstrack seed` to create them.")
        return
    for section in found:
        click.echo(f"{section.order_index:>3}  {section.slug:<28} {section.name}")


@sections.command("add")
@click.argument("name")
@click.option("--slug", default=None, help="URL-safe slug (derived from NAME by default)")
@click.option(
    "--order", "order_index", type=int, default=None, help="Display position (appended by default)"
)
@click.pass_context
def add_section(ctx: click.Context, name: str, slug: str | None, order_index: int | None):
    """Create a section."""

    async def _add():
        registry = await _get_registry(ctx.obj["backend"])
        index = order_index
        if index is None:
            existing = await registry.list_sections()
            index = max((s.order_index for s in existing), default=0) + 1
        return await registry.create_section(name, slug or slugify(name), index)

    section = _run(_add())
    click.echo(f"Created section '{section.slug}' at position {section.order_index}")


@cli.command()
@click.option("--user", "user_id", default=None, help="Also load sample requirements for this user")
@click.pass_context
def seed(ctx: click.Context, user_id: str | None):
    """Create the ASVS sections that do not exist yet.

    With --user, the sample requirements are loaded into the
    Architecture section for that user.
    """

    async def _seed():
        registry = await _get_registry(ctx.obj["backend"])
        seeded = await seed_sections(registry)
        created = []
        if user_id:
            section = await registry.get_section_by_slug(SAMPLE_SECTION_SLUG)
            created = await registry.create_batch(section.id, user_id, sample_templates())
        return seeded, created

    seeded, created = _run(_seed())
    click.echo(f"{len(seeded)} section(s) ready")
    if created:
        click.echo(f"Loaded {len(created)} sample requirement(s) into '{SAMPLE_SECTION_SLUG}'")


# ============ Templates ============

@cli.group()
def templates():
    """Manage requirement templates."""


@templates.command("load")
@click.argument("section_slug")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--user", "user_id", required=True, help="User owning the requirements")
@click.pass_context
def load_templates(ctx: click.Context, section_slug: str, file: Path, user_id: str):
    """Replace a section's requirements with templates from a YAML FILE.

    Existing requirements of the user in that section are deleted.
    """

    async def _load():
        items = load_templates_from_yaml(file)
        registry = await _get_registry(ctx.obj["backend"])
        section = await registry.get_section_by_slug(section_slug)
        return await registry.create_batch(section.id, user_id, items)

    created = _run(_load())
    click.echo(f"Created {len(created)} requirement(s) in '{section_slug}'")


# ============ Results ============

@cli.command()
@click.option("--user", "user_id", required=True, help="User to compute statistics for")
@click.option("--json", "as_json", is_flag=True, help="Print the results snapshot as JSON")
@click.option("--section-filter", default=None, help="Only show sections whose name contains this text")
@click.pass_context
def stats(ctx: click.Context, user_id: str, as_json: bool, section_filter: str | None):
    """Show section and overall validity statistics."""

    async def _stats():
        store = await create_store(ctx.obj["backend"])
        return await load_dashboard(store, user_id, LevelPolicy.from_settings())

    dashboard = filter_sections(_run(_stats()), section_filter)
    payload = dashboard_payload(
        dashboard,
        threshold=settings.recommendation_threshold,
        limit=settings.max_recommendations,
    )
    if as_json:
        click.echo(json.dumps(payload, indent=2))
        return

    overall = dashboard.overall
    if not overall.available:
        click.echo("Data unavailable: statistics could not be loaded.", err=True)
        return
    for stat in dashboard.sections:
        if not stat.available:
            click.echo(f"  {stat.section_name or stat.section_id:<32} unavailable")
        elif not stat.assessed:
            click.echo(f"  {stat.section_name:<32} not assessed")
        else:
            band = status_band(stat.validity_percentage)
            click.echo(
                f"  {stat.section_name:<32} {stat.valid_count:>3}/{stat.total_count:<3} "
                f"{stat.validity_percentage:5.1f}% [{band}]"
            )
    click.echo(
        f"Overall: {overall.overall_validity_percentage:.1f}% "
        f"({overall.valid_sum}/{overall.total_sum}), level {overall.asvs_level_acquired}"
    )
    for item in payload["recommendations"]:
        click.echo(f"- {item}")


@cli.command()
@click.option("--user", "user_id", required=True, help="User to export results for")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["pdf", "markdown", "json"]),
    default="pdf",
    show_default=True,
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (defaults to REPORT_OUTPUT_DIR/asvs-l1-results-<date>.<ext>)",
)
@click.option("--section-filter", default=None, help="Only export sections whose name contains this text")
@click.pass_context
def export(
    ctx: click.Context, user_id: str, fmt: str, output: Path | None, section_filter: str | None
):
    """Export the results snapshot."""

    async def _load():
        store = await create_store(ctx.obj["backend"])
        return await load_dashboard(store, user_id, LevelPolicy.from_settings())

    dashboard = filter_sections(_run(_load()), section_filter)
    extension = {"pdf": "pdf", "markdown": "md", "json": "json"}[fmt]
    output = output or Path(settings.report_output_dir) / report_filename(extension)

    if fmt == "pdf":
        export_pdf(
            dashboard,
            output,
            threshold=settings.recommendation_threshold,
            limit=settings.max_recommendations,
        )
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        if fmt == "markdown":
            content = render_markdown(
                dashboard,
                threshold=settings.recommendation_threshold,
                limit=settings.max_recommendations,
            )
        else:
            content = json.dumps(
                dashboard_payload(
                    dashboard,
                    threshold=settings.recommendation_threshold,
                    limit=settings.max_recommendations,
                ),
                indent=2,
            )
        output.write_text(content, encoding="utf-8")
    click.echo(f"Results exported to {output}")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
