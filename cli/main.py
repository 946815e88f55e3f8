#!/usr/bin/env python3
"""
CLI for compiling workflow definitions into standalone Python modules.

Usage:
    workflow-compile --input workflow.json --output generated/my_workflow.py
    workflow-compile --from-api 5 --api-url http://localhost:3000 -o flows/flow.py
    workflow-compile --input workflow.json          # prints to stdout

    workflow-codegen config                         # show effective settings
"""
import json
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box
from rich.markup import escape

# Load .env before importing compiler settings
load_dotenv()

from shared.config import config as compiler_config  # noqa: E402
from shared.logger import get_logger  # noqa: E402
from workflow_codegen import compile_workflow  # noqa: E402
from workflow_codegen.compiler.parse import parse_workflow_definition  # noqa: E402
from workflow_codegen.errors import InputAcquisitionError, InvalidDefinitionError  # noqa: E402
from workflow_codegen.loader import fetch_definition, load_definition_file  # noqa: E402
from workflow_codegen.schema.models import CompilerOptions, StrategyMode  # noqa: E402

console = Console()
err_console = Console(stderr=True)

# Global verbose flag
VERBOSE = False


def _fail(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    sys.exit(1)


@click.command(name="workflow-compile")
@click.option('--input', '-i', 'input_path', type=click.Path(dir_okay=False), help='Path to workflow definition JSON file')
@click.option('--from-api', 'from_api', help='Fetch workflow from API by ID (e.g., --from-api 5)')
@click.option('--api-url', default=None, help=f'Base API URL (default: {compiler_config.api_url})')
@click.option('--output', '-o', 'output_path', type=click.Path(dir_okay=False), help='Output path for the generated .py file (default: stdout)')
@click.option(
    '--strategy',
    type=click.Choice([mode.value for mode in StrategyMode]),
    default=compiler_config.strategy_mode,
    show_default=True,
    help='Execution strategy tag',
)
@click.option('--comments', type=click.BOOL, default=compiler_config.include_comments, show_default=True, help='Include `# API: <src>` comments')
@click.option('--static', 'static_resolve', type=click.BOOL, default=False, show_default=True, help='Resolve $.path statically where possible (reserved)')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def compile_command(
    input_path: Optional[str],
    from_api: Optional[str],
    api_url: Optional[str],
    output_path: Optional[str],
    strategy: str,
    comments: bool,
    static_resolve: bool,
    verbose: bool,
):
    """
    Compile a workflow definition into a standalone Python module.

    \b
    Examples:
      workflow-compile -i workflow.json -o generated/my_workflow.py
      workflow-compile --from-api 5 --api-url http://localhost:3000 -o flows/flow.py
      workflow-compile -i workflow.json  # prints to stdout
    """
    level = "DEBUG" if verbose or VERBOSE else compiler_config.log_level
    get_logger("workflow_codegen", level=level)

    try:
        if input_path:
            payload = load_definition_file(Path(input_path).resolve())
        elif from_api:
            payload = fetch_definition(
                from_api,
                api_url or compiler_config.api_url,
                timeout=compiler_config.api_timeout,
            )
        else:
            _fail("Must specify --input or --from-api\nUse --help for usage information")
            return

        definition = parse_workflow_definition(payload)
    except (InputAcquisitionError, InvalidDefinitionError) as e:
        _fail(str(e))
        return

    options = CompilerOptions(
        include_comments=comments,
        strategy_mode=StrategyMode(strategy),
        static_resolve=static_resolve,
    )
    code = compile_workflow(definition, options)

    if not output_path:
        click.echo(code, nl=False)
        return

    target = Path(output_path).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(code, encoding="utf-8")

    console.print(f"[green]✓[/green] Compiled workflow [bold]{escape(definition.id)}[/bold] → {escape(str(target))}")
    console.print(f"  States: {len(definition.states)}")
    console.print(f"  Output: {len(code.encode('utf-8'))} bytes")


@click.group()
@click.version_option(version="0.1.0", prog_name="workflow-codegen")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """
    Workflow code generator.

    Compiles visual-editor workflow definitions into standalone Python modules.

    \b
    Commands:
      compile        - Compile a definition file or an API-stored workflow
      config         - Show current configuration
    """
    global VERBOSE
    VERBOSE = verbose


cli.add_command(compile_command, name="compile")


@cli.command()
@click.option('--format', '-f', 'fmt', type=click.Choice(['json', 'table']), default='table', help='Output format')
def config(fmt: str):
    """
    Show current configuration.

    Displays configuration values loaded from environment variables and .env file.
    """
    sections = {
        "Workflows API": [
            ("api_url", "WORKFLOW_API_URL"),
            ("api_timeout", "WORKFLOW_API_TIMEOUT"),
        ],
        "Code Generation": [
            ("strategy_mode", "WORKFLOW_STRATEGY_MODE"),
            ("include_comments", "WORKFLOW_INCLUDE_COMMENTS"),
        ],
        "Logging": [
            ("log_level", "WORKFLOW_LOG_LEVEL"),
        ],
    }

    if fmt == 'json':
        output = {
            section: {attr: getattr(compiler_config, attr, None) for attr, _ in items}
            for section, items in sections.items()
        }
        click.echo(json.dumps(output, indent=2, default=str))
        return

    console.print(Panel.fit(
        "[bold cyan]Workflow Compiler Configuration[/bold cyan]",
        border_style="cyan"
    ))
    for section, items in sections.items():
        table = Table(title=section, box=box.ROUNDED)
        table.add_column("Setting", style="cyan")
        table.add_column("Env Variable", style="dim")
        table.add_column("Value")

        for attr, env_var in items:
            table.add_row(attr, env_var, str(getattr(compiler_config, attr, None)))

        console.print(table)
        console.print()


def main():
    """Entry point for the `workflow-codegen` command."""
    cli()


if __name__ == "__main__":
    main()
