import asyncio
from typing import Optional

import typer
from pydantic import ValidationError

from smdr_ingest.core.config import get_settings
from smdr_ingest.core.logging_config import configure_logging
from smdr_ingest.entrypoint import serve
from smdr_ingest.exceptions import StartupError

app = typer.Typer(add_completion=False)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    port: Optional[int] = typer.Option(None, "-p", "--port", help="TCP port to listen on."),
    source_filter: Optional[str] = typer.Option(
        None, "-f", "--filter", help="Only accept connections from this address."
    ),
    database_url: Optional[str] = typer.Option(
        None, "-d", "--database", help="Database connection string."
    ),
):
    """Receive SMDR records from a phone system and store them."""
    overrides = {
        "port": port,
        "source_filter": source_filter,
        "database_url": database_url,
    }
    try:
        settings = get_settings(**{key: value for key, value in overrides.items() if value is not None})
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=1)

    log = configure_logging(settings.log_level)
    try:
        asyncio.run(serve(settings, log))
    except StartupError as exc:
        log.error("%s", exc)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
