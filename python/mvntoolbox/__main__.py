"""Main CLI entry point for mvntoolbox."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import ToolboxConfig
from .engine import SessionConfig
from .errors import ToolboxError
from .formatters import OutputFormatter
from .maven_engine import MavenRepositoryEngine
from .models import Coordinate
from .resolver import ToolboxResolver
from .scopes import ResolutionScope

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_GROUPS = ["org.apache.maven.plugins", "org.codehaus.mojo"]

SCOPE_CHOICES = [scope.name.lower() for scope in ResolutionScope]


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        name = {'TRACE': 'DEBUG', 'WARN': 'WARNING'}.get(log_level.upper(), log_level.upper())
        level = getattr(logging, name, logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def create_resolver(args) -> ToolboxResolver:
    """Build the resolver from environment configuration and CLI overrides."""
    config = ToolboxConfig.from_env().with_overrides(
        local_repository=args.local_repo,
        repositories=args.repos,
        timeout=args.timeout,
        offline=args.offline,
    )
    engine = MavenRepositoryEngine.from_config(config)
    return ToolboxResolver(engine, config.remote_repositories, SessionConfig(offline=config.offline))


def write_output(content: str, output: Optional[str]) -> None:
    if output and output != '-':
        Path(output).write_text(content)
        logger.info(f"Wrote output to {output}")
    else:
        sys.stdout.write(content)


def handle_tree(args) -> int:
    """Handle the 'tree' subcommand: collect and print the dependency graph."""
    resolver = create_resolver(args)
    with resolver.engine:
        root = resolver.load_gav(args.gav, args.boms)
        scope = ResolutionScope.from_name(args.scope)
        result = resolver.collect_root(scope, root, verbose=args.verbose_tree)

    if args.tree_format == 'maven':
        output = OutputFormatter.format_as_maven_tree(result.root)
    else:
        output = OutputFormatter.format_as_tree(result.root)
    write_output(output, args.output)
    return 0


def handle_resolve(args) -> int:
    """Handle the 'resolve' subcommand: resolve the graph and its files."""
    resolver = create_resolver(args)
    with resolver.engine:
        root = resolver.load_gav(args.gav, args.boms)
        scope = ResolutionScope.from_name(args.scope)
        result = resolver.resolve_root(scope, root)

    if args.output_format == 'sbom':
        output = OutputFormatter.format_as_sbom(result, command_line=' '.join(sys.argv[1:]))
    elif args.output_format == 'tree':
        output = OutputFormatter.format_as_tree(result.root)
    else:
        output = OutputFormatter.format_as_list(result.artifact_results)
    write_output(output, args.output)
    return 0


def handle_newest(args) -> int:
    """Handle the 'newest' subcommand."""
    resolver = create_resolver(args)
    with resolver.engine:
        artifact = resolver.parse_gav(args.gav if args.gav.count(':') > 1 else f"{args.gav}:0")
        newest = resolver.find_newest_version(artifact, args.allow_snapshots)

    if newest is None:
        print(f"No {'' if args.allow_snapshots else 'released '}version found for {artifact.ga}", file=sys.stderr)
        return 1
    print(artifact.with_version(str(newest)))
    return 0


def handle_plugins(args) -> int:
    """Handle the 'plugins' subcommand."""
    resolver = create_resolver(args)
    group_ids = args.groups or DEFAULT_PLUGIN_GROUPS
    with resolver.engine:
        plugins: List[Coordinate] = resolver.list_available_plugins(group_ids)

    for plugin in plugins:
        print(plugin)
    logger.info(f"Found {len(plugins)} plugins in {len(group_ids)} groups")
    return 0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--repo', dest='repos', action='append', metavar='SPEC',
                        help='Remote repository as url, id::url or id::type::url (repeatable)')
    parser.add_argument('--local-repo', help='Local repository directory (default: ~/.m2/repository)')
    parser.add_argument('--timeout', type=float, help='HTTP timeout in seconds')
    parser.add_argument('--offline', action='store_true', help='Only use the local repository')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--loglevel', choices=['TRACE', 'DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set log level')


def add_root_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('gav', help='Root artifact, g:a[:e[:c]]:v or g:a when a BOM manages its version')
    parser.add_argument('--bom', dest='boms', action='append', default=[], metavar='GAV',
                        help='BOM to import dependency management from (repeatable, first wins)')
    parser.add_argument('--scope', default='runtime', choices=SCOPE_CHOICES,
                        help='Resolution scope. Default: runtime')
    parser.add_argument('-o', '--output', default='-', help='Output file (default: stdout)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mvntoolbox',
        description='Collect and resolve Maven dependency graphs'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    tree_parser = subparsers.add_parser('tree', help='Print the dependency tree of an artifact')
    add_root_arguments(tree_parser)
    tree_parser.add_argument('--tree-style', dest='tree_format', default='unicode',
                             choices=['unicode', 'maven'],
                             help='Tree visualization style (unicode, maven). Default: unicode')
    tree_parser.add_argument('--verbose-tree', action='store_true',
                             help='Keep conflict losers and all direct dependencies in the tree')
    add_common_arguments(tree_parser)
    tree_parser.set_defaults(func=handle_tree)

    resolve_parser = subparsers.add_parser('resolve', help='Resolve an artifact and its dependencies')
    add_root_arguments(resolve_parser)
    resolve_parser.add_argument('--format', dest='output_format', default='list',
                                choices=['list', 'tree', 'sbom'],
                                help='Output format (list, tree, sbom). Default: list')
    add_common_arguments(resolve_parser)
    resolve_parser.set_defaults(func=handle_resolve)

    newest_parser = subparsers.add_parser('newest', help='Find the newest version of an artifact')
    newest_parser.add_argument('gav', help='Artifact as g:a or g:a[:e[:c]]:v')
    newest_parser.add_argument('--allow-snapshots', action='store_true', help='Consider snapshot versions')
    add_common_arguments(newest_parser)
    newest_parser.set_defaults(func=handle_newest)

    plugins_parser = subparsers.add_parser('plugins', help='List plugins available in plugin groups')
    plugins_parser.add_argument('groups', nargs='*', help=f"Plugin groups (default: {', '.join(DEFAULT_PLUGIN_GROUPS)})")
    add_common_arguments(plugins_parser)
    plugins_parser.set_defaults(func=handle_plugins)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.loglevel)

    try:
        return args.func(args)
    except ToolboxError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
