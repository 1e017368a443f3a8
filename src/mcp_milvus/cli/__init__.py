import click

from mcp_milvus.cli.serve import serve
from mcp_milvus.version import PACKAGE_VERSION


@click.group(invoke_without_command=True)
@click.version_option(PACKAGE_VERSION, prog_name="mcp-milvus")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Milvus MCP server CLI"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(serve)

__all__ = ["cli"]
