from pathlib import Path

import click

from poolscope.cli.utils import CliContext


@click.group()
@click.version_option(package_name="poolscope")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file, defaults to ~/.config/poolscope/config.toml",
)
@click.option(
    "--rpc",
    default=None,
    help="RPC endpoint (HTTP or websocket URL, or IPC socket path). Overrides the config file.",
)
@click.option(
    "--chain-id",
    type=int,
    default=1,
    show_default=True,
    help="Chain ID of the RPC endpoint to use from the config file.",
)
@click.option(
    "--snapshot",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file of pool snapshots to analyze instead of reading from a node.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    rpc: str | None,
    chain_id: int,
    snapshot: Path | None,
) -> None:
    ctx.obj = CliContext(
        config_path=config_path,
        rpc=rpc,
        chain_id=chain_id,
        snapshot=snapshot,
    )


from . import pool  # noqa: F401, E402
