from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Literal

import typer
import yaml
from result import is_err

from cascade.config import Config, ConfigError, Source
from cascade.sources import EnvSource, FileSource, FlagSource

FormatOption = Annotated[
    Literal["yaml", "json"],
    typer.Option("--format", "-f", show_default=True, case_sensitive=False, help="Output format (yaml or json)."),
]
FileOption = Annotated[
    list[Path] | None,
    typer.Option("--file", "-c", help="Config file or directory; repeat to layer several."),
]
EnvPrefixOption = Annotated[
    str | None,
    typer.Option("--env-prefix", "-e", help="Read environment variables starting with this prefix."),
]

_EXTRA_ARGS = {"allow_extra_args": True, "ignore_unknown_options": True}

app = typer.Typer(help="Inspect merged configuration.")


@app.callback(invoke_without_command=True)
def _config_root(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("show", context_settings=_EXTRA_ARGS)
def show(
    ctx: typer.Context,
    file: FileOption = None,
    env_prefix: EnvPrefixOption = None,
    format: FormatOption = "yaml",
) -> None:
    """Print the resolved configuration; extra arguments are read as --key=value flags."""
    with _build_config(file, env_prefix, ctx.args) as config:
        result = config.load().and_then(lambda _: config.scan(dict[str, object]))
        if is_err(result):
            _handle_error(result.err_value)
            raise typer.Exit(code=1)

        typer.echo(_format_payload(result.ok_value, format.lower()))


@app.command("get", context_settings=_EXTRA_ARGS)
def get(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Dotted key, for example server.http.addr.")],
    file: FileOption = None,
    env_prefix: EnvPrefixOption = None,
    format: FormatOption = "yaml",
) -> None:
    """Print a single resolved value."""
    with _build_config(file, env_prefix, ctx.args) as config:
        load_result = config.load()
        if is_err(load_result):
            _handle_error(load_result.err_value)
            raise typer.Exit(code=1)

        raw_result = config.get(key).raw()
        if is_err(raw_result):
            _handle_error(raw_result.err_value)
            raise typer.Exit(code=1)

        raw = raw_result.ok_value
        if isinstance(raw, (dict, list)):
            typer.echo(_format_payload(raw, format.lower()))
        else:
            typer.echo(config.get(key).as_str().unwrap_or(str(raw)))


def _build_config(files: list[Path] | None, env_prefix: str | None, flags: list[str]) -> Config:
    sources: list[Source] = [FileSource(path) for path in files or []]
    if env_prefix is not None:
        sources.append(EnvSource(env_prefix))
    if flags:
        sources.append(FlagSource(flags))
    return Config(*sources)


def _format_payload(payload: object, format: str) -> str:
    if format == "json":
        return json.dumps(payload, indent=2, sort_keys=True, default=str)
    return yaml.safe_dump(payload, sort_keys=True)


def _handle_error(error: ConfigError) -> None:
    message = error.message
    name = getattr(error, "name", None) or getattr(error, "source", None)
    if name is not None and name not in message:
        message = f"{message} ({name})"

    typer.secho(message, err=True, fg=typer.colors.RED)
