"""
Command-line interface for S-63 permits and cells.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from pydantic import ValidationError

from s63.cell.decrypter import CellDecrypter
from s63.common.config import Config
from s63.common.exceptions import PermitParseError, S63Error
from s63.common.logging_utils import setup_logger
from s63.common.models import UserPermit
from s63.permit.index import permits_from_file
from s63.permit.parser import PermitFile
from s63.userpermit import decode_user_permit, encode_user_permit

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _installation_id(config: Config, installation_id: str | None) -> str:
    if installation_id:
        return installation_id
    try:
        return config.get_installation_id()
    except ValueError as err:
        raise click.ClickException(str(err)) from err


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (default: from S63_LOG_LEVEL env or INFO)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """S-63 permit and cell tools"""
    config = Config()
    level = getattr(logging, log_level.upper()) if log_level else config.LOG_LEVEL
    setup_logger(logging.getLogger("s63"), level)
    ctx.obj = config


@cli.command()
@click.argument(
    "permit_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--installation-id",
    default=None,
    help="Installation id (default: from S63_INSTALLATION_ID env)",
)
@click.pass_obj
def permits(config: Config, permit_file: Path, installation_id: str | None) -> None:
    """List the cell permits of a permit file"""
    hwid = _installation_id(config, installation_id)
    failures = 0
    with permit_file.open("rb") as f:
        try:
            metadata, parsed = PermitFile.open(f)
            records = parsed.permits(hwid)
        except S63Error as err:
            raise click.ClickException(str(err)) from err
        click.echo(
            f"Issued {metadata.issue_date:%Y-%m-%d %H:%M}, "
            f"format version {metadata.format_version}"
        )
        for item in records:
            if isinstance(item, PermitParseError):
                failures += 1
                click.echo(f"ERROR {item}", err=True)
                continue
            cell = item.cell_permit
            edition = "-" if item.edition is None else str(item.edition)
            expired = " expired" if cell.is_expired() else ""
            click.echo(
                f"{cell.cell_id} {cell.expiry:%Y-%m-%d} "
                f"{item.sli.name} edition={edition} {item.data_server_id}{expired}"
            )
    if failures:
        msg = f"{failures} invalid permit record(s)"
        raise click.ClickException(msg)


@cli.command()
@click.argument(
    "cell_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--permit-file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Permit file (default: from S63_PERMIT_FILE env)",
)
@click.option(
    "--installation-id",
    default=None,
    help="Installation id (default: from S63_INSTALLATION_ID env)",
)
@click.option(
    "--cell",
    default=None,
    help="Cell id (default: first 8 characters of the file name)",
)
@click.option(
    "--output",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: cell file name with .dec appended)",
)
@click.pass_obj
def decrypt(
    config: Config,
    cell_file: Path,
    permit_file: Path | None,
    installation_id: str | None,
    cell: str | None,
    output: Path | None,
) -> None:
    """Decrypt an encrypted cell"""
    hwid = _installation_id(config, installation_id)
    permit_file = permit_file or config.PERMIT_FILE_PATH
    if permit_file is None:
        msg = "No permit file given. Pass --permit-file or set S63_PERMIT_FILE."
        raise click.ClickException(msg)
    cell = cell or cell_file.name[:8]
    output = output or cell_file.with_name(cell_file.name + config.OUTPUT_SUFFIX)

    try:
        decrypter = CellDecrypter(permits_from_file(hwid, permit_file))
        with cell_file.open("rb") as f:
            payload = decrypter.decrypt_cell(cell, f)
    except S63Error as err:
        raise click.ClickException(str(err)) from err

    output.write_bytes(payload)
    click.echo(f"Decrypted {cell} to {output}")


@cli.group()
def userpermit() -> None:
    """Encode and decode user permits"""


@userpermit.command("encode")
@click.option("--hwid", required=True, help="5 character hardware id")
@click.option("--id", "permit_id", required=True, help="4 hex digit manufacturer id")
@click.option("--key", required=True, help="5 character installation key")
def encode_command(hwid: str, permit_id: str, key: str) -> None:
    """Encode a user permit"""
    try:
        click.echo(encode_user_permit(UserPermit(hwid=hwid, id=permit_id), key))
    except (S63Error, ValidationError) as err:
        raise click.ClickException(str(err)) from err


@userpermit.command("decode")
@click.argument("permit")
@click.option("--key", required=True, help="5 character installation key")
def decode_command(permit: str, key: str) -> None:
    """Decode a user permit"""
    try:
        decoded = decode_user_permit(permit, key)
    except S63Error as err:
        raise click.ClickException(str(err)) from err
    click.echo(f"hwid={decoded.hwid} id={decoded.id}")


if __name__ == "__main__":
    cli()
