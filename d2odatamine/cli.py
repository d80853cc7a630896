"""Click CLI for the D2O datamining tool."""
from __future__ import annotations

import fnmatch
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from d2odatamine.config import derive_d2o_path, derive_data_dir, list_d2o_files
from d2odatamine.d2o.container import D2OFile
from d2odatamine.d2o.errors import D2OError
from d2odatamine.profiles import (
    Config,
    Profile,
    load_config,
    resolve_data_dir,
    save_config,
    validate_profile_name,
)


class Context:
    """Holds the data directory resolved from --data-dir / --profile / config."""

    def __init__(self, data_dir: Path | None = None, profile: str | None = None):
        self._explicit_data_dir = data_dir
        self._profile_name = profile
        self._resolved_data_dir: Path | None = None
        self._resolved = False

    def _resolve(self):
        if not self._resolved:
            self._resolved_data_dir = resolve_data_dir(self._explicit_data_dir, self._profile_name)
            self._resolved = True

    @property
    def data_dir(self) -> Path:
        self._resolve()
        return self._resolved_data_dir  # type: ignore[return-value]

    def d2o_path(self, name: str) -> Path:
        """Resolve FILE: an existing path as-is, otherwise a name in the data dir."""
        path = Path(name)
        if path.is_file():
            return path
        path = derive_d2o_path(self.data_dir, name)
        if not path.is_file():
            raise click.UsageError(f"D2O file not found: {path}")
        return path


pass_ctx = click.make_pass_decorator(Context)


@contextmanager
def open_d2o(path: Path) -> Iterator[D2OFile]:
    """Open a D2O file, turning format errors into one-line CLI errors."""
    try:
        d2o = D2OFile.open(path)
    except D2OError as exc:
        raise click.ClickException(f"{path.name}: {exc}") from None
    try:
        yield d2o
    except D2OError as exc:
        raise click.ClickException(f"{path.name}: {exc}") from None
    finally:
        d2o.close()


def _parse_id(object_id_str: str) -> int:
    try:
        return int(object_id_str, 0)
    except ValueError:
        raise click.BadParameter(f"Invalid object id: {object_id_str}") from None


@click.group()
@click.option(
    "--data-dir", required=False, default=None,
    type=click.Path(exists=False, file_okay=False, path_type=Path),
    help="Directory holding .d2o files (optional if profiles configured)",
)
@click.option(
    "--profile", "-p", default=None, type=str,
    help="Named profile to use (from d2odm init)",
)
@click.option("--verbose", "-v", count=True, help="Log progress (-v) or debug detail (-vv)")
@click.version_option(package_name="d2odatamine")
@click.pass_context
def cli(ctx, data_dir: Optional[Path], profile: Optional[str], verbose: int):
    """d2odm - D2O game data decoding tool.

    Read D2O containers, list their class definitions, and decode
    objects by id or in bulk as JSON or CSV.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )
    ctx.ensure_object(dict)
    ctx.obj = Context(data_dir=data_dir, profile=profile)


@cli.command()
@click.option("--reset", is_flag=True, help="Discard saved profiles before adding new ones.")
def init(reset: bool):
    """Remember where the game's .d2o files live.

    Each profile names one client install, such as a live and a beta build.
    Point it at the game folder or straight at data/common; the first
    profile becomes the default used when no --data-dir or --profile is given.
    """
    config = Config() if reset else load_config()
    if config.profiles:
        click.echo("Saved profiles:")
        for line in config.describe():
            click.echo(f"  {line}")
        click.echo("Entering an existing name replaces that profile.\n")

    while True:
        name = click.prompt("Profile name", default="live" if not config.profiles else None).strip()
        if not validate_profile_name(name):
            click.echo("Profile names may only contain letters, digits, '-' and '_'.")
            continue

        data_dir = _prompt_data_dir()
        count = len(list_d2o_files(data_dir))
        if count:
            click.echo(f"Found {count} .d2o files in {data_dir}")
        elif not click.confirm(f"No .d2o files in {data_dir}. Save it anyway?", default=False):
            continue

        make_default = bool(config.profiles) and name != config.default_profile and click.confirm(
            f"Use '{name}' by default?", default=False
        )
        config.add(Profile(name=name, data_dir=data_dir), make_default=make_default)

        if not click.confirm("Add a profile for another client?", default=False):
            break

    click.echo(f"\nSaved {save_config(config)}")
    for line in config.describe():
        click.echo(f"  {line}")
    click.echo("\nTry: d2odm files, d2odm classes Monsters, d2odm show Monsters 31")


def _prompt_data_dir() -> Path:
    while True:
        raw = click.prompt("Game or data/common directory").strip().strip("\"'")
        data_dir = derive_data_dir(Path(raw).expanduser())
        if data_dir.is_dir():
            return data_dir
        click.echo(f"Not a directory: {data_dir}")


@cli.command()
@pass_ctx
def files(ctx: Context):
    """List .d2o files in the data directory."""
    paths = list_d2o_files(ctx.data_dir)
    if not paths:
        click.echo(f"No .d2o files found in {ctx.data_dir}.")
        return

    click.echo(f"{'Name':<40}  {'Size':>10}")
    click.echo("-" * 52)
    for p in paths:
        click.echo(f"{p.stem:<40}  {p.stat().st_size / 1024:>8.0f} KB")


@cli.command()
@click.argument("file")
@pass_ctx
def info(ctx: Context, file: str):
    """Show header and table summary for a D2O file."""
    path = ctx.d2o_path(file)
    with open_d2o(path) as d2o:
        click.echo(f"File:          {path}")
        click.echo(f"Header:        {'AKSD-wrapped' if d2o.wrapped else 'plain'} "
                   f"(D2O at offset {d2o.header_offset})")
        click.echo(f"Index table:   offset {d2o.index_offset}")
        click.echo(f"Objects:       {len(d2o):,}")
        click.echo(f"Classes:       {len(d2o.classes):,}")


@cli.command()
@click.argument("file")
@click.option("--name", "name_pattern", help="Filter by class name (supports * wildcards)")
@pass_ctx
def classes(ctx: Context, file: str, name_pattern: Optional[str]):
    """Print the class definitions of a D2O file."""
    from d2odatamine.d2o.schema import format_class

    with open_d2o(ctx.d2o_path(file)) as d2o:
        shown = 0
        for schema in d2o.classes.values():
            if name_pattern and not fnmatch.fnmatch(schema.name, name_pattern):
                continue
            if shown:
                click.echo()
            click.echo(format_class(schema))
            shown += 1
        if not shown:
            click.echo("No matching classes.")


@cli.command()
@click.argument("file")
@pass_ctx
def ids(ctx: Context, file: str):
    """List object ids in index table order."""
    with open_d2o(ctx.d2o_path(file)) as d2o:
        for object_id in d2o.ids():
            click.echo(object_id)


@cli.command()
@click.argument("file")
@click.argument("object_id_str")
@pass_ctx
def show(ctx: Context, file: str, object_id_str: str):
    """Decode one object by id (decimal or 0x hex) and print it as JSON."""
    from d2odatamine.export.json_export import export_json

    object_id = _parse_id(object_id_str)
    with open_d2o(ctx.d2o_path(file)) as d2o:
        if object_id not in d2o:
            raise click.ClickException(f"Object {object_id} not found in {d2o.path.name}.")
        schema = d2o.class_of(object_id)
        obj = d2o.get_object(object_id)
        click.echo(f"Object {object_id} ({schema.qualified_name})")
        click.echo(export_json([obj], ids=[object_id]))


@cli.command()
@click.argument("file")
@click.option("--limit", type=int, default=None, help="Print only the first N objects")
@click.option("--strict", is_flag=True, help="Fail if the record scan does not end at the index table")
@pass_ctx
def dump(ctx: Context, file: str, limit: Optional[int], strict: bool):
    """Decode every object of a D2O file and print them as JSON."""
    from d2odatamine.export.json_export import export_json

    with open_d2o(ctx.d2o_path(file)) as d2o:
        objects = d2o.objects(strict=strict)
    if limit is not None:
        objects = objects[:limit]
    click.echo(export_json(objects))


@cli.command()
@click.argument("file")
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), required=True)
@click.option("--class", "class_pattern", help="Only export objects of this class (supports * wildcards)")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@pass_ctx
def export(ctx: Context, file: str, fmt: str, class_pattern: Optional[str], output: Optional[str]):
    """Export decoded objects as CSV or JSON."""
    path = ctx.d2o_path(file)
    t0 = time.perf_counter()
    with open_d2o(path) as d2o:
        if class_pattern:
            object_ids = [
                i for i in d2o.ids()
                if fnmatch.fnmatch(d2o.class_of(i).name, class_pattern)
            ]
            objects = [d2o.get_object(i) for i in object_ids]
        else:
            object_ids = None
            objects = d2o.objects()
    elapsed = time.perf_counter() - t0

    if fmt == "csv":
        from d2odatamine.export.csv_export import export_csv
        data = export_csv(objects)
    else:
        from d2odatamine.export.json_export import export_json
        data = export_json(objects, ids=object_ids)

    if output:
        Path(output).write_text(data, encoding="utf-8")
        click.echo(f"Exported {len(objects):,} objects to {output} in {elapsed:.2f}s")
    else:
        click.echo(data)
