"""
py-gen command line entry point

Generates a pybind11 extension project from C++ declarations.

Usage:
    py-gen MODULE SOURCE... [-o DIR] [-c CONFIG] [-j JOBS] [-- CLANG_ARGS...]
    py-gen MODULE --from-ir model.json [-o DIR]

Everything after `--` is forwarded verbatim to clang++. The compiler can be
selected with the CLANGPP environment variable.
"""

import argparse
import sys
from typing import Optional

from loguru import logger

from .collector import collect_sources
from .config import Config, load_config
from .errors import PyGenError, ConfigError, MaterializeError
from .generator import Generator
from .ir import Model, DUPLICATE_POLICIES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='py-gen',
        description='Generate pybind11 bindings, type stubs and build files from C++ declarations',
    )
    parser.add_argument('module', nargs='?', default=None,
                        help='Name of the generated Python module')
    parser.add_argument('sources', nargs='*', default=[],
                        help='C++ sources or headers to analyze')
    parser.add_argument('-o', '--output-dir', default=None,
                        help='Directory to write the generated project to (default: .)')
    parser.add_argument('-c', '--config', default=None,
                        help='TOML configuration file; command line options override it')
    parser.add_argument('-j', '--jobs', type=int, default=None,
                        help='Number of sources analyzed in parallel')
    parser.add_argument('--version-string', default=None,
                        help='Version written into the packaging files')
    parser.add_argument('--duplicates', choices=DUPLICATE_POLICIES, default=None,
                        help='How declarations seen in several sources are merged (default: keep)')
    parser.add_argument('--dump-ir', metavar='FILE', default=None,
                        help='Write the collected declarations as JSON')
    parser.add_argument('--from-ir', metavar='FILE', default=None,
                        help='Generate from a JSON dump instead of running clang')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    return parser


def split_passthrough(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split the argument list at the first `--`"""
    if '--' in argv:
        index = argv.index('--')
        return argv[:index], argv[index + 1:]
    return argv, []


def setup_logging(verbose: bool):
    logger.remove()
    logger.add(sys.stderr, level='DEBUG' if verbose else 'INFO',
               format='<level>{level: <8}</level> | {message}')


def resolve_config(args: argparse.Namespace, clang_args: list[str]) -> Config:
    """Merge the config file with command line options"""
    config = load_config(args.config) if args.config else Config()
    if args.module:
        config.module_name = args.module
    if args.sources:
        config.sources = list(args.sources)
    if clang_args:
        config.compile_args = config.compile_args + clang_args
    if args.output_dir is not None:
        config.output_dir = args.output_dir
    if args.version_string is not None:
        config.version = args.version_string
    if args.jobs is not None:
        config.jobs = args.jobs
    if args.duplicates is not None:
        config.duplicates = args.duplicates
    config.validate()
    if not config.sources and not args.from_ir:
        raise ConfigError('no sources given')
    return config


def run(args: argparse.Namespace, clang_args: list[str]):
    config = resolve_config(args, clang_args)

    if args.from_ir:
        logger.info(f'Loading declarations from {args.from_ir}')
        try:
            model = Model.load(args.from_ir)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ConfigError(f'cannot load IR {args.from_ir}: {e}') from e
    else:
        model = collect_sources(config.sources, config.compile_args,
                                jobs=config.jobs, duplicates=config.duplicates)

    if args.dump_ir:
        logger.info(f'Writing declarations to {args.dump_ir}')
        try:
            model.save(args.dump_ir)
        except OSError as e:
            raise MaterializeError(f'cannot write IR: {e.strerror}', args.dump_ir) from e

    generator = Generator(
        module_name=config.module_name,
        output_dir=config.output_dir,
        version=config.version,
        type_mapper=config.type_mapper(),
    )
    generator.generate(model)


def main(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    own_args, clang_args = split_passthrough(argv)
    args = build_parser().parse_args(own_args)
    setup_logging(args.verbose)

    try:
        run(args, clang_args)
    except PyGenError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
