import json
import logging
from dataclasses import replace
from typing import List, Optional, Tuple

import click

import index_lifecycle.middleware.clusters as clusters_
import index_lifecycle.middleware.indices as indices_
import index_lifecycle.middleware.reindex as reindex_
import index_lifecycle.middleware.search as search_
from index_lifecycle.environment import Environment
from index_lifecycle.models.search_result import Sort, SortOrder
from index_lifecycle.models.utils import ExitCode
from index_lifecycle.models.version import detect_generation

logger = logging.getLogger(__name__)

# ################### UNIVERSAL ####################


class Context(object):
    def __init__(self, config_file) -> None:
        self.config_file = config_file
        try:
            self.env = Environment(config_file)
        except Exception as e:
            raise click.ClickException(str(e))
        self.json = False


def echo_result(result: Tuple[ExitCode, str]) -> None:
    exitcode, message = result
    if exitcode != ExitCode.SUCCESS:
        raise click.ClickException(message)
    click.echo(message)


def require_engine(ctx):
    if ctx.env.engine is None:
        raise click.UsageError("No cluster is defined.")
    return ctx.env.engine


def parse_json_option(value: Optional[str], option_name: str):
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Not valid JSON: {e}", param_hint=option_name)


def parse_sort(values: Tuple[str, ...]) -> List[Sort]:
    sorts = []
    for value in values:
        field, _, order = value.partition(":")
        try:
            sorts.append(Sort(field=field, order=SortOrder(order or SortOrder.ASCENDING.value)))
        except ValueError:
            raise click.BadParameter(f"Expected field or field:asc|desc, got '{value}'", param_hint="--sort")
    return sorts


@click.group()
@click.option("--config-file", default="/config/index_lifecycle.yaml", help="Path to config file")
@click.option("--json", is_flag=True)
@click.option('-v', '--verbose', count=True, help="Verbosity level. Default is warn, -v is info, -vv is debug.")
@click.pass_context
def cli(ctx, config_file, json, verbose):
    logging.basicConfig(level=logging.WARN - (10 * verbose))
    logger.info(f"Logging set to {logging.getLevelName(logger.getEffectiveLevel())}")
    ctx.obj = Context(config_file)
    ctx.obj.json = json


@cli.command(name="connection-check")
@click.pass_obj
def connection_check_cmd(ctx):
    """Checks if a connection can be established to the cluster"""
    click.echo(clusters_.connection_check(require_engine(ctx)))

# ##################### INDICES ###################


@cli.group(name="indices", help="Commands to inspect, create and delete indices")
@click.pass_obj
def indices_group(ctx):
    pass


@indices_group.command(name="list")
@click.pass_obj
def list_indices_cmd(ctx):
    """List every index with its aliases"""
    require_engine(ctx)
    echo_result(indices_.list_indices(ctx.env.inventory, as_json=ctx.json))


@indices_group.command(name="types")
@click.option("--index", "index", multiple=True, help="Index or alias to inspect, repeatable. Defaults to all.")
@click.pass_obj
def list_types_cmd(ctx, index):
    """List the document types registered under the given indices"""
    require_engine(ctx)
    echo_result(indices_.list_types(ctx.env.inventory, list(index), as_json=ctx.json))


@indices_group.command(name="compile")
@click.argument("names", nargs=-1)
@click.option("--with-aliases/--without-aliases", default=True, show_default=True,
              help="Include the index and search aliases in the creation document")
@click.pass_obj
def compile_indices_cmd(ctx, names, with_aliases):
    """Print the creation document of configured indices without sending it"""
    generation = ctx.env.engine.generation if ctx.env.engine else detect_generation(None)
    try:
        descriptors = ctx.env.descriptors(list(names))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAMES")
    echo_result(indices_.compile_descriptors(generation, descriptors, include_aliases=with_aliases,
                                             as_json=ctx.json))


@indices_group.command(name="create")
@click.argument("names", nargs=-1)
@click.option("--with-aliases/--without-aliases", default=True, show_default=True,
              help="Attach the index and search aliases when creating")
@click.pass_obj
def create_indices_cmd(ctx, names, with_aliases):
    """Create configured indices that do not exist yet. Defaults to every configured index."""
    engine = require_engine(ctx)
    try:
        descriptors = ctx.env.descriptors(list(names))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAMES")
    echo_result(indices_.create(engine, descriptors, include_aliases=with_aliases))


@indices_group.command(name="delete")
@click.argument("names", nargs=-1)
@click.option("--all", "delete_all", is_flag=True, default=False, help="Delete every index in the cluster")
@click.option("--acknowledge-risk", is_flag=True, show_default=True, default=False,
              help="Flag to acknowledge risk and skip confirmation")
@click.pass_obj
def delete_indices_cmd(ctx, names, delete_all, acknowledge_risk):
    """[Caution] Delete indices by name"""
    engine = require_engine(ctx)
    if names and delete_all:
        raise click.UsageError("Pass index names or --all, not both.")
    if not names and not delete_all:
        raise click.UsageError("Pass the names of the indices to delete, or --all.")
    if delete_all and not acknowledge_risk:
        if not click.confirm('Deleting all indices WILL result in the loss of all data on the cluster. '
                             'Are you sure you want to continue?'):
            click.echo("Aborting the command.")
            return
    echo_result(indices_.delete(engine, list(names), allow_delete_all=delete_all))


@indices_group.command(name="mappings")
@click.option("--index", "index", multiple=True, help="Index or alias to read, repeatable. Defaults to all.")
@click.pass_obj
def mappings_cmd(ctx, index):
    """Read back the mappings stored in the cluster"""
    engine = require_engine(ctx)
    echo_result(indices_.mappings(engine, list(index), as_json=ctx.json))

# ##################### ALIASES ###################


@cli.group(name="aliases", help="Commands to move aliases between index generations")
@click.pass_obj
def aliases_group(ctx):
    pass


@aliases_group.command(name="swap")
@click.option("--old", "old", multiple=True, required=True, help="Configured index losing its aliases")
@click.option("--new", "new", multiple=True, required=True, help="Configured index receiving the aliases")
@click.pass_obj
def swap_aliases_cmd(ctx, old, new):
    """Move the index and search aliases from the old indices to the new ones in one request"""
    engine = require_engine(ctx)
    try:
        old_descriptors = ctx.env.descriptors(list(old))
        new_descriptors = ctx.env.descriptors(list(new))
    except ValueError as e:
        raise click.BadParameter(str(e))
    echo_result(indices_.swap_aliases(engine, old_descriptors, new_descriptors))

# ##################### REINDEX ###################


@cli.group(name="reindex", help="Commands to migrate documents into a new index generation")
@click.pass_obj
def reindex_group(ctx):
    if ctx.env.reindex_config is None:
        raise click.UsageError("Reindex is not configured")


@reindex_group.command(name="run")
@click.option("--create/--no-create", "create_new_indexes", default=None,
              help="Create the destination indices")
@click.option("--transfer/--no-transfer", "transfer_data", default=None,
              help="Copy documents from the source indices")
@click.option("--swap-aliases/--no-swap-aliases", "update_aliases", default=None,
              help="Move the aliases to the destination indices")
@click.option("--remove-old/--no-remove-old", "remove_old_indexes", default=None,
              help="Delete the source indices")
@click.option("--scroll", default=None, help="Scroll keep alive, e.g. 1m")
@click.option("--page-size", type=int, default=None, help="Documents per scroll page and bulk request")
@click.option("--max-workers", type=int, default=None, help="Index pairs transferred in parallel")
@click.pass_obj
def run_reindex_cmd(ctx, **overrides):
    """Run the enabled reindex stages. Flags override the configured stages."""
    engine = require_engine(ctx)
    config = replace(ctx.env.reindex_config, **{k: v for k, v in overrides.items() if v is not None})
    try:
        jobs = ctx.env.reindex_jobs()
    except ValueError as e:
        raise click.ClickException(str(e))
    echo_result(reindex_.run(engine, config, jobs, as_json=ctx.json))

# ##################### DOCUMENTS ###################


@cli.command(name="search")
@click.option("--index", "index", multiple=True, help="Index or alias to search, repeatable. Defaults to all.")
@click.option("--type", "doc_type", multiple=True, help="Document type to search, repeatable.")
@click.option("--query", default=None, help="Search body as JSON")
@click.option("--sort", multiple=True, help="Sort by field, as field or field:asc|desc. Repeatable.")
@click.pass_obj
def search_cmd(ctx, index, doc_type, query, sort):
    """Run a search and print the result page"""
    require_engine(ctx)
    body = parse_json_option(query, "--query")
    echo_result(search_.search(ctx.env.documents, body=body, index=list(index), doc_type=list(doc_type),
                               sort=parse_sort(sort), as_json=ctx.json))


@cli.group(name="document", help="Commands on single documents")
@click.pass_obj
def document_group(ctx):
    pass


@document_group.command(name="get")
@click.argument("doc_id")
@click.option("--index", "index", multiple=True, help="Index to look in, repeatable. Defaults to all.")
@click.option("--type", "doc_type", multiple=True, help="Document type to look in, repeatable. Defaults to all.")
@click.pass_obj
def get_document_cmd(ctx, doc_id, index, doc_type):
    """Find a document by id"""
    require_engine(ctx)
    echo_result(search_.get_document(ctx.env.documents, doc_id, index=list(index), doc_type=list(doc_type),
                                     as_json=ctx.json))


def main():
    cli()


#################################################

if __name__ == "__main__":
    cli()
