"""
Main CLI entry point for Advertly
"""

import asyncio
import json
import logging
from typing import Optional

import click

from .. import __version__
from ..core.config import Config
from ..core.errors import AdvertlyError
from ..services.ads_library_service import FacebookAdsLibraryService
from ..services.models import ProgressEvent

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def _print_progress(event: ProgressEvent) -> None:
    click.echo(f"[{event.progress:>3}%] {event.message}")


async def _generate_in_process(answers: dict, profile_id: Optional[str]):
    from ..pipelines.strategy_generation import StrategyDependencies, run_strategy_generation

    deps = StrategyDependencies.create()
    return await run_strategy_generation(
        answers,
        deps,
        on_progress=_print_progress,
        profile_id=profile_id,
    )


async def _generate_remote(answers: dict, profile_id: Optional[str], api_url: str, timeout: Optional[float]):
    from ..client import StrategyClient

    client = StrategyClient(api_url, timeout=timeout)
    return await client.generate(answers, on_progress=_print_progress, profile_id=profile_id)


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    Advertly - marketing strategy generation

    Turns onboarding answers into a competitor analysis and a ready-to-run
    ad campaign, using the Facebook Ads Library and OpenAI.
    """
    pass


@cli.command()
@click.argument('answers_file', type=click.File('r'))
@click.option('--api-url', default=None, help='Run against an Advertly API instead of in-process')
@click.option('--profile-id', default=None, help='Profile id to echo in the result')
@click.option('--timeout', type=float, default=None, help='Seconds to wait for the API (with --api-url)')
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None, help='Write the strategy JSON here')
def generate(answers_file, api_url: Optional[str], profile_id: Optional[str], timeout: Optional[float], output: Optional[str]):
    """
    Generate a strategy from an onboarding answers JSON file

    Example:
        advertly generate answers.json --output strategy.json
        advertly generate answers.json --api-url http://localhost:8000
    """
    try:
        answers = json.load(answers_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Answers file is not valid JSON: {e}")

    if not api_url and not Config.OPENAI_API_KEY:
        raise click.ClickException("OPENAI_API_KEY is not set (or pass --api-url)")

    try:
        if api_url:
            strategy = asyncio.run(_generate_remote(answers, profile_id, api_url, timeout))
        else:
            strategy = asyncio.run(_generate_in_process(answers, profile_id))
    except AdvertlyError as e:
        logger.error(f"Strategy generation failed: {e}")
        raise click.ClickException(str(e))

    result = strategy.model_dump_json(by_alias=True, indent=2)

    if output:
        with open(output, 'w') as f:
            f.write(result)
        click.echo(f"✅ Strategy saved to {output}")
    else:
        click.echo(result)

    analysis = strategy.competitor_analysis
    click.echo(
        f"Data source: {analysis.data_source}, "
        f"{len(analysis.real_ads_from_library)} real ads, "
        f"{len(strategy.ad_campaign.ad_variants)} ad variants",
        err=True,
    )


@cli.command('ads-status')
def ads_status():
    """Check whether the Facebook Ads Library token works"""
    status = asyncio.run(FacebookAdsLibraryService().check_availability())

    mark = "✅" if status.valid else "❌"
    click.echo(f"{mark} {status.message}")
    if status.error_code is not None:
        click.echo(f"   Error code: {status.error_code}")

    if not status.valid:
        raise SystemExit(1)


@cli.command()
@click.option('--host', default='0.0.0.0', help='Bind address')
@click.option('--port', type=int, default=8000, help='Port')
@click.option('--reload', is_flag=True, help='Reload on code changes')
def serve(host: str, port: int, reload: bool):
    """Run the Advertly API server"""
    import uvicorn

    try:
        Config.validate()
    except ValueError as e:
        raise click.ClickException(str(e))

    uvicorn.run("advertly.api.app:app", host=host, port=port, reload=reload)


if __name__ == '__main__':
    cli()
