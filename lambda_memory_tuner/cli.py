"""
Command Line Interface for the Lambda memory tuner.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from colorama import Fore, Style, init as colorama_init
from tabulate import tabulate

from . import __version__
from .batch import BatchCoordinator
from .config_module import TunerConfig, ConfigManager
from .exceptions import TunerException, ValidationError
from .invoker import LambdaInvoker
from .models import BatchResult, Measurement
from .providers.aws import AWSLambdaProvider
from .reports import (
    export_to_csv,
    export_to_json,
    format_measurements_table,
    format_summary_table,
)
from .utils import load_payload, memory_color, validate_function_identifier

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

COLORS = {"red": Fore.RED, "yellow": Fore.YELLOW, "green": Fore.GREEN}


def colored_memory(size: int) -> str:
    return f"{COLORS[memory_color(size)]}{Style.BRIGHT}{size}MB{Style.RESET_ALL}"


async def describe_and_tune(
    coordinator: BatchCoordinator, provider: AWSLambdaProvider, identifiers, event
) -> BatchResult:
    """Look every function up once, then tune the batch."""
    functions = []
    for identifier in identifiers:
        # Unknown or malformed functions go in as bare identifiers; the batch records the error.
        if not validate_function_identifier(identifier):
            functions.append(identifier)
            continue
        try:
            info = await provider.get_function_information(identifier)
        except ValidationError as e:
            logger.warning(f"Could not describe {identifier}: {e}")
            functions.append(identifier)
            continue
        coordinator.invoker.remember(info)
        click.echo(f"   {info.function_name}: currently {colored_memory(info.current_memory_size)}")
        functions.append(info)
    return await coordinator.run(functions, lambda function: event)


@click.group()
@click.version_option(version=__version__, prog_name="lambda-memory-tuner")
def cli():
    """Lambda Memory Tuner - find the memory size that balances cost and speed."""
    pass


@cli.command(name="list")
@click.option("--region", "-r", help="AWS region your Lambda functions live in")
@click.option("--profile", help="Local AWS profile to use")
def list_functions(region: Optional[str], profile: Optional[str]):
    """List the Lambda functions of a region."""
    try:
        provider = AWSLambdaProvider(region=region, profile=profile)
        functions = asyncio.run(provider.list_functions())

        if not functions:
            click.echo("No AWS Lambda functions found in this region.")
            return

        rows = [
            [f.function_name, colored_memory(f.current_memory_size), f.runtime, f.state]
            for f in functions
        ]
        click.echo(tabulate(rows, headers=["Name", "Memory", "Runtime", "State"]))
        click.echo(f"\n{len(functions)} function(s) found.")

    except TunerException as e:
        click.echo(f"❌ Tuner error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("functions", nargs=-1, required=True)
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="Configuration file path")
@click.option("--template", "-t", type=click.Choice(sorted(ConfigManager().list_templates())), help="Configuration template to start from")
@click.option("--min-memory", "-m", type=int, help="Minimum memory to test (MB)")
@click.option("--max-memory", "-M", type=int, help="Maximum memory to test (MB)")
@click.option("--max-price", "-P", type=float, help="Maximum price per --invocations-per-month invocations (USD)")
@click.option("--invocations-per-month", type=int, help="Expected monthly invocations for the price ceiling")
@click.option("--objective", type=click.Choice(["cost", "speed", "balanced"]), help="Optimization objective")
@click.option("--strategy", type=click.Choice(["bisection", "grid"]), help="Search strategy")
@click.option("--samples", "-n", type=int, help="Invocations per memory size")
@click.option("--concurrency", type=int, help="Functions tuned at the same time")
@click.option("--payload", "-p", help="JSON payload for Lambda invocation")
@click.option("--payload-file", type=click.Path(exists=True), help="File containing JSON payload")
@click.option("--region", "-r", help="AWS region your Lambda functions live in")
@click.option("--profile", help="Local AWS profile to use")
@click.option("--output-dir", "-o", help="Output directory for results")
@click.option("--format", "output_format", type=click.Choice(["json", "csv"]), default="json", help="Output format for results")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def tune(
    functions: Tuple[str, ...],
    config_file: Optional[str],
    template: Optional[str],
    min_memory: Optional[int],
    max_memory: Optional[int],
    max_price: Optional[float],
    invocations_per_month: Optional[int],
    objective: Optional[str],
    strategy: Optional[str],
    samples: Optional[int],
    concurrency: Optional[int],
    payload: Optional[str],
    payload_file: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    output_dir: Optional[str],
    output_format: str,
    verbose: bool,
):
    """Tune the memory size of one or more Lambda functions."""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config_manager = ConfigManager()
        if config_file:
            base_config = TunerConfig.from_file(config_file)
        elif template:
            base_config = config_manager.create_from_template(template)
        else:
            base_config = TunerConfig()

        tuner_config = config_manager.merge_configs(
            base_config,
            {
                "min_memory": min_memory,
                "max_memory": max_memory,
                "max_price": max_price,
                "invocations_per_month": invocations_per_month,
                "objective": objective,
                "strategy": strategy,
                "sample_count": samples,
                "concurrency": concurrency,
                "region": region,
                "profile": profile,
                "output_dir": output_dir,
            },
        )

        for warning in config_manager.validate_config(tuner_config):
            click.echo(f"⚠️  {warning}")

        event = load_payload(payload, payload_file)

        click.echo("🚀 Starting Lambda memory tuning...")
        click.echo(f"   Functions: {', '.join(functions)}")
        click.echo(f"   Memory range: {tuner_config.min_memory}-{tuner_config.max_memory}MB")
        click.echo(f"   Objective: {tuner_config.objective}")
        click.echo(f"   Samples per size: {tuner_config.sample_count}")
        if tuner_config.max_price is not None:
            click.echo(
                f"   Price ceiling: ${tuner_config.max_price} per "
                f"{tuner_config.invocations_per_month} invocations"
            )

        def progress(measurement: Measurement):
            status = (
                f"{measurement.mean_duration_ms:.2f}ms"
                if measurement.is_usable
                else f"unusable ({measurement.unusable_reason})"
            )
            click.echo(
                f"   {measurement.function_id}: {colored_memory(measurement.memory_size)} -> {status}"
            )

        provider = AWSLambdaProvider.from_config(tuner_config)
        invoker = LambdaInvoker.from_config(provider, tuner_config)
        coordinator = BatchCoordinator(tuner_config, invoker=invoker, on_measurement=progress)
        batch = asyncio.run(describe_and_tune(coordinator, provider, functions, event))

        click.echo("\n📋 TUNING SUMMARY")
        click.echo("=" * 50)
        click.echo(format_summary_table(batch))
        for result in batch.results.values():
            click.echo(f"\n{result.function_id} ({result.phase.value})")
            click.echo(format_measurements_table(result))
            if result.reason:
                click.echo(f"   {result.reason}")
        click.echo("=" * 50)

        output_path = Path(tuner_config.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        if output_format == "json":
            report_path = output_path / "tuning-results.json"
            export_to_json(batch, str(report_path), tuner_config.include_raw_data)
        else:
            report_path = output_path / "tuning-results.csv"
            export_to_csv(batch.results.values(), str(report_path))
        click.echo(f"✅ Results saved to: {report_path}")

        for function_id, error in batch.errors.items():
            click.echo(f"{Fore.RED}❌ {function_id}: {error}{Style.RESET_ALL}", err=True)

        restore_failures = batch.restore_failures
        for function_id, error in restore_failures.items():
            click.echo(
                f"{Fore.RED}{Style.BRIGHT}⚠️  {function_id} was NOT restored to its original "
                f"memory size: {error}{Style.RESET_ALL}",
                err=True,
            )

        if batch.errors or restore_failures:
            sys.exit(1)

    except (TunerException, ValueError) as e:
        click.echo(f"❌ Tuner error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--output", "-o", default="tuner.config.json", help="Output configuration file path")
@click.option("--template", "-t", type=click.Choice(sorted(ConfigManager().list_templates())), default="balanced", help="Configuration template to use")
def init(output: str, template: str):
    """Generate a sample configuration file."""
    try:
        config = ConfigManager().create_from_template(template)
        config.save(output)

        click.echo(f"✅ Configuration file created: {output}")
        click.echo(f"   Template used: {template}")
        click.echo("\nNext steps:")
        click.echo("1. Adjust the memory range and objective if needed")
        click.echo(f"2. Run: lambda-memory-tuner tune --config {output} <function-name>")

    except (TunerException, OSError) as e:
        click.echo(f"❌ Error creating configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def templates():
    """List available configuration templates."""
    click.echo("\n📋 Available Configuration Templates")
    click.echo("=" * 50)
    for name, description in ConfigManager().list_templates().items():
        click.echo(f"{name:15} - {description}")
    click.echo("=" * 50)
    click.echo("\nUse: lambda-memory-tuner init --template <name>")


def main():
    """Main entry point for the CLI."""
    colorama_init()
    cli()


if __name__ == "__main__":
    main()
