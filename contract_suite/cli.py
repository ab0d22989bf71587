"""CLI entry point for the contract suite runner.

    contract-suite run ArraysTest CoinTest --base-dir build --endpoint http://localhost:1337/rpc
    contract-suite run --suite suite.yaml [options]
    contract-suite validate suite.yaml
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .reporting import ConsoleReporter, JsonReporter
from .runner.orchestrator import (
    EXPECTED_PROTOCOL_VERSION,
    Orchestrator,
    OrchestratorConfig,
)
from .suite import RunSpec, parse_run_spec, validate_run_spec
from .transport import HttpExecutionClient, RetryPolicy

logger = logging.getLogger(__name__)

REPORT_FILENAME = "contract_suite_report.json"


def create_client(retries: Optional[int] = None) -> HttpExecutionClient:
    """Build the execution client used by ``run``."""
    policy = RetryPolicy() if retries is None else RetryPolicy(max_retries=retries)
    return HttpExecutionClient(retry_policy=policy)


@click.group()
@click.version_option(__version__, prog_name="contract-suite")
def main():
    """Deploy test contracts one by one and run their test methods."""


@main.command()
@click.argument("units", nargs=-1)
@click.option("--suite", "suite_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML suite file. Other options override its values.")
@click.option("--base-dir", type=click.Path(file_okay=False, path_type=Path),
              envvar="CONTRACT_SUITE_BASE_DIR", help="Directory with compiled units.")
@click.option("--endpoint", envvar="CONTRACT_SUITE_ENDPOINT",
              help="Execution environment RPC endpoint.")
@click.option("--coverage/--no-coverage", default=None, help="Analyze coverage of tested units.")
@click.option("--timeout", type=float, default=None,
              help="Per-stage timeout in seconds (default: wait forever).")
@click.option("--protocol-version", default=EXPECTED_PROTOCOL_VERSION, show_default=True,
              help="Required protocol version of the execution environment.")
@click.option("--retry", type=int, default=None, help="Retries for transport failures.")
@click.option("--save-report", is_flag=True, help="Save report to file.")
@click.option("--report-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory for saved reports.")
@click.option("--pretty", is_flag=True, help="Pretty print output.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose progress and debug logging.")
def run(
    units: tuple[str, ...],
    suite_file: Optional[Path],
    base_dir: Optional[Path],
    endpoint: Optional[str],
    coverage: Optional[bool],
    timeout: Optional[float],
    protocol_version: str,
    retry: Optional[int],
    save_report: bool,
    report_dir: Optional[Path],
    pretty: bool,
    verbose: bool,
):
    """Run UNITS (or the units of --suite) against the execution environment."""
    _configure_logging(verbose)

    try:
        spec = build_run_spec(units, suite_file, base_dir, endpoint, coverage)
    except (FileNotFoundError, ValueError) as e:
        output_error(str(e), command="run")
        sys.exit(2)

    validation = validate_run_spec(spec)
    if not validation.valid:
        errors_str = "; ".join(f"{e.path}: {e.message}" for e in validation.errors)
        output_error(f"Invalid suite: {errors_str}", command="run")
        sys.exit(2)
    for warning in validation.warnings:
        logger.warning("%s: %s", warning.path, warning.message)

    client = create_client(retry)
    orchestrator = Orchestrator(
        client,
        config=OrchestratorConfig(
            expected_protocol_version=protocol_version,
            stage_timeout=timeout,
        ),
    )
    json_reporter = JsonReporter()
    json_reporter.attach(orchestrator.channel)
    ConsoleReporter(verbose=verbose).attach(orchestrator.channel)

    start_time = time.time()
    try:
        orchestrator.run(spec)
    except KeyboardInterrupt:
        duration_ms = int((time.time() - start_time) * 1000)
        output_error("Run interrupted by user", command="run", duration_ms=duration_ms)
        sys.exit(130)
    finally:
        client.close()

    duration_ms = int((time.time() - start_time) * 1000)
    report = json_reporter.generate(duration_ms=duration_ms)

    report_path = None
    if save_report:
        path = json_reporter.save(report, (report_dir or Path(".")) / REPORT_FILENAME)
        click.echo(f"Report saved: {path}", err=True)
        report_path = str(path)

    flow_output = json_reporter.generate_flow_output(report, report_path)
    click.echo(json_reporter.to_json_string(flow_output, pretty=pretty))

    if not flow_output["success"]:
        sys.exit(1)


@main.command()
@click.argument("suite_file", type=click.Path(dir_okay=False, path_type=Path))
def validate(suite_file: Path):
    """Validate a YAML suite file."""
    try:
        spec = parse_run_spec(suite_file)
    except (FileNotFoundError, ValueError) as e:
        output_error(f"Failed to parse suite: {e}", command="validate")
        sys.exit(1)

    validation = validate_run_spec(spec)
    output = {
        "success": validation.valid,
        "command": "validate",
        "data": {
            "units": list(spec.units),
            "errors": [{"path": e.path, "message": e.message} for e in validation.errors],
            "warnings": [{"path": w.path, "message": w.message} for w in validation.warnings],
        },
        "message": str(validation),
    }
    click.echo(json.dumps(output, ensure_ascii=False))

    if not validation.valid:
        sys.exit(1)


def build_run_spec(
    units: tuple[str, ...],
    suite_file: Optional[Path],
    base_dir: Optional[Path],
    endpoint: Optional[str],
    coverage: Optional[bool],
) -> RunSpec:
    """Combine a suite file with command line overrides.

    Raises:
        FileNotFoundError: If the suite file doesn't exist.
        ValueError: If the suite file is malformed or required values are missing.
    """
    if suite_file is not None:
        spec = parse_run_spec(suite_file)
        return RunSpec(
            units=units or spec.units,
            base_dir=base_dir if base_dir is not None else spec.base_dir,
            endpoint=endpoint or spec.endpoint,
            coverage=spec.coverage if coverage is None else coverage,
        )

    if not units:
        raise ValueError("No units given. Pass unit names or --suite.")
    if not endpoint:
        raise ValueError("No endpoint given. Pass --endpoint or set CONTRACT_SUITE_ENDPOINT.")

    return RunSpec(
        units=units,
        base_dir=base_dir if base_dir is not None else Path("."),
        endpoint=endpoint,
        coverage=bool(coverage),
    )


def output_error(message: str, command: str = "run", **extra):
    """Output error in the CLI JSON envelope."""
    output = {
        "success": False,
        "command": command,
        "data": extra or None,
        "message": message,
    }
    click.echo(json.dumps(output, ensure_ascii=False))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


if __name__ == "__main__":
    main()
