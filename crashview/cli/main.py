import click
from crashview.config import DebugConfig
from crashview.source.extractor import SourceExtractor

@click.group()
def cli(): ...

@cli.command()
def config():
    """Print the configuration resolved from the environment."""
    cfg = DebugConfig.from_env()
    try:
        cfg.validate()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()
    click.echo(cfg.get_summary())

@cli.command()
@click.argument("path")
@click.argument("line", type=int)
@click.option("-c", "--context", "context_lines", default=None, type=int,
              help="Lines before and after the target line")
@click.option("--root", default=None, help="Project root (default: DEBUG_PROJECT_ROOT or cwd)")
def excerpt(path: str, line: int, context_lines, root):
    """
    Print the source window around PATH:LINE.

    \b
    Examples:
      crashview excerpt app/models.py 42
      crashview excerpt app/models.py 42 -c 3 --root /srv/app
    """
    cfg = DebugConfig.from_env()
    if root:
        cfg.project_root = root
    window = SourceExtractor(cfg).extract(path, line, context_lines)

    if window.error:
        click.echo(f"Error: {window.error}", err=True)
        raise SystemExit(1)

    width = len(str(window.end_line))
    for number, record in window.lines.items():
        marker = ">" if record.is_highlighted else " "
        click.echo(f"{marker} {number:>{width}} | {record.raw_content}")

@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
@click.option("--port", default=8000, help="Server port (default: 8000)")
@click.option("--no-debug", is_flag=True, help="Serve the generic error page instead of reports")
def serve(host: str, port: int, no_debug: bool):
    """
    Run the demo app with crashview installed.

    \b
    Endpoints:
      GET /boom     - KeyError with a sensitive argument
      GET /db       - sqlite3.OperationalError
      GET /pay      - custom exception
      GET /syntax   - SyntaxError
      GET /user     - unknown route (not-found report)
    """
    import uvicorn
    from crashview.api.demo import create_app

    click.echo(f"Starting crashview demo on http://{host}:{port}/boom")
    uvicorn.run(create_app(debug=not no_debug), host=host, port=port)

if __name__ == "__main__":
    cli()
