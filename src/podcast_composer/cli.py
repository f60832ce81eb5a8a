"""CLI entry point for podcast content selection and generation."""

import asyncio
from pathlib import Path

import click
import httpx
from loguru import logger

from .api.client import NotebookClient
from .api.lookup import resolve
from .config import ComposerConfig
from .errors import ComposerError, GenerationSubmitError
from .models import InclusionMode, format_count
from .session import GenerationSession

log = logger.bind(stage="cli")


@click.command()
@click.option("--list", "list_only", is_flag=True, help="List notebooks and episode profiles.")
@click.option(
    "-n",
    "--notebook",
    "notebook_refs",
    multiple=True,
    help="Notebook id or name to include. Repeatable.",
)
@click.option("-p", "--profile", default=None, help="Episode profile id or name.")
@click.option("--name", "episode_name", default="", help="Episode name.")
@click.option(
    "--instructions",
    default="",
    help="Additional guidance appended to the episode briefing.",
)
@click.option("--exclude-notes", is_flag=True, help="Include sources only.")
@click.option(
    "--full-content",
    is_flag=True,
    help="Use full content for every source instead of insights.",
)
@click.option(
    "--estimate-only",
    is_flag=True,
    help="Print the token/character estimate without submitting.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    default=None,
    help="Path to .env file.",
)
def main(
    list_only: bool,
    notebook_refs: tuple[str, ...],
    profile: str | None,
    episode_name: str,
    instructions: str,
    exclude_notes: bool,
    full_content: bool,
    estimate_only: bool,
    verbose: bool,
    config_file: str | None,
) -> None:
    """Select notebook content and generate a podcast episode."""
    config_kwargs: dict[str, bool | str] = {"verbose": verbose}
    if config_file:
        config_kwargs["_env_file"] = str(Path(config_file))

    config = ComposerConfig(**config_kwargs)  # type: ignore[arg-type]
    config.setup_logging()
    log.debug(f"API base URL: {config.api_base_url} (env file: {config_file or '.env'})")

    if not list_only and not notebook_refs:
        raise click.UsageError("Select at least one notebook with --notebook.")

    try:
        asyncio.run(
            _run(
                config,
                list_only=list_only,
                notebook_refs=notebook_refs,
                profile_ref=profile,
                episode_name=episode_name,
                instructions=instructions,
                exclude_notes=exclude_notes,
                full_content=full_content,
                estimate_only=estimate_only,
            )
        )
    except GenerationSubmitError as e:
        raise click.ClickException(f"{e} (category: {e.category})")
    except ComposerError as e:
        raise click.ClickException(str(e))
    except httpx.HTTPError as e:
        raise click.ClickException(f"API request failed: {e}")


async def _run(
    config: ComposerConfig,
    *,
    list_only: bool,
    notebook_refs: tuple[str, ...],
    profile_ref: str | None,
    episode_name: str,
    instructions: str,
    exclude_notes: bool,
    full_content: bool,
    estimate_only: bool,
) -> None:
    async with NotebookClient.from_config(config) as client:
        session = GenerationSession(client, config)
        await session.open()

        if list_only:
            _print_listing(session)
            return

        notebook_ids = []
        for ref in notebook_refs:
            nb = resolve(session.notebooks, ref, threshold=config.lookup_threshold)
            if nb is None:
                raise click.UsageError(f"Notebook not found: {ref!r}")
            notebook_ids.append(nb.id)

        for notebook_id in notebook_ids:
            session.expand(notebook_id)
        await session.settle()

        for notebook_id in notebook_ids:
            if notebook_id in session.loader.errors:
                click.echo(f"Warning: {session.loader.errors[notebook_id]}", err=True)
            collection = session.collection(notebook_id)
            if full_content:
                for source in collection.sources:
                    session.set_source_mode(notebook_id, source.id, InclusionMode.FULL)
            if exclude_notes:
                for note in collection.notes:
                    session.toggle_note(notebook_id, note.id, False)
        await session.settle()

        names = session.notebook_names()
        for notebook_id in notebook_ids:
            summary = session.summary(notebook_id)
            click.echo(
                f"{names.get(notebook_id, notebook_id)}: {summary.sources} sources, "
                f"{summary.notes} notes ({summary.state})"
            )
        counts = session.counts
        click.echo(
            f"Selected {session.selected_count()} items: "
            f"{format_count(counts.token_count)} tokens / "
            f"{format_count(counts.char_count)} chars"
        )

        if estimate_only:
            return

        profile_id = ""
        if profile_ref:
            found = resolve(
                session.episode_profiles, profile_ref, threshold=config.lookup_threshold
            )
            profile_id = found.id if found else profile_ref

        job = await session.submit(profile_id, episode_name, instructions)
        click.echo(f"Generation job submitted: {job.job_id} ({job.status})")


def _print_listing(session: GenerationSession) -> None:
    click.echo("Notebooks:")
    for nb in session.notebooks:
        click.echo(f"  {nb.id}  {nb.name}")
    click.echo("Episode profiles:")
    for profile in session.episode_profiles:
        click.echo(f"  {profile.id}  {profile.name} (speakers: {profile.speaker_config})")
