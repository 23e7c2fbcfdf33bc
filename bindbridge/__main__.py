import argparse
import sys

from bindbridge import BindBridge
from bindbridge import logging as bindbridge_logging
from bindbridge import utils
from bindbridge.conversion import ConversionError
from bindbridge.data_types import UnsafePolicy
from bindbridge.decls import validate_file


logger = bindbridge_logging.get_logger(__name__)


def parse_convert(parser):
    parser.add_argument(
        'input_file',
        type=str,
        help='The JSON declaration tree produced from the binding generator output'
    )

    parser.add_argument(
        '--config',
        '-c',
        type=str,
        dest='config_file',
        help='The configuration file to use'
    )

    parser.add_argument(
        '--output',
        '-o',
        type=str,
        dest='output_file',
        help='The path to write the API records to, default to stdout'
    )

    safety = parser.add_mutually_exclusive_group()
    safety.add_argument(
        '--unsafe',
        action='store_const',
        const=UnsafePolicy.ALL_FUNCTIONS_UNSAFE,
        dest='unsafe_policy',
        help='Mark every generated bridge function unsafe'
    )
    safety.add_argument(
        '--safe',
        action='store_const',
        const=UnsafePolicy.ALL_FUNCTIONS_SAFE,
        dest='unsafe_policy',
        help='Generate safe bridge functions (the default unless the config says otherwise)'
    )

    parser.add_argument(
        '--exclude-utilities',
        action='store_true',
        default=None,
        help='Do not add the helper APIs such as make_string'
    )

    _add_logging_args(parser)


def parse_validate(parser):
    parser.add_argument(
        'input_file',
        type=str,
        help='The JSON declaration tree to check'
    )

    parser.add_argument(
        '--config',
        '-c',
        type=str,
        dest='config_file',
        help='The configuration file to use'
    )

    _add_logging_args(parser)


def _add_logging_args(parser):
    parser.add_argument(
        '--log-dir',
        type=str,
        help='Also write logs to a timestamped file in this directory'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='The console log level, overriding the config'
    )


def _configure_logging_from_args(args, console_to_stderr=False):
    config = utils.try_load_config(args.config_file)
    bindbridge_logging.configure_logging(
        config,
        console_level_override=args.log_level,
        log_dir_override=args.log_dir,
        console_to_stderr=console_to_stderr,
    )


def convert(parser, args):
    if args.output_file and not args.output_file.endswith('.json'):
        parser.error('The output path should end with .json')

    # stdout carries the records when no output file is given
    _configure_logging_from_args(args, console_to_stderr=args.output_file is None)

    try:
        bridge = BindBridge(
            input_file=args.input_file,
            output_file=args.output_file,
            config_file=args.config_file,
            unsafe_policy=args.unsafe_policy,
            exclude_utilities=args.exclude_utilities,
        )
        bridge.run()
    except (ConversionError, FileNotFoundError) as e:
        logger.error('❌ Conversion failed: %s', e)
        sys.exit(1)
    sys.exit(0)


def validate(parser, args):
    _configure_logging_from_args(args)
    try:
        validate_file(args.input_file)
    except (ConversionError, FileNotFoundError) as e:
        logger.error('❌ %s is not a valid declaration tree: %s', args.input_file, e)
        sys.exit(1)
    logger.info('✅ %s is a valid declaration tree', args.input_file)
    sys.exit(0)


def main():
    parser = argparse.ArgumentParser(
        description='bindbridge: turns binding-generator declarations into C++ bridge API records'
    )

    subparsers = parser.add_subparsers(
        dest='subcommand',
        description='valid subcommands for bindbridge',
        help='Use one of these subcommands followed by -h for additional help',
        required=True
    )

    convert_parser = subparsers.add_parser(
        'convert',
        help='Convert a declaration tree into API records'
    )

    validate_parser = subparsers.add_parser(
        'validate',
        help='Check a declaration tree against the input schema'
    )

    parse_convert(convert_parser)
    parse_validate(validate_parser)

    args = parser.parse_args()

    match args.subcommand:
        case 'convert':
            convert(parser, args)
        case 'validate':
            validate(parser, args)
        case _:
            parser.print_help()


if __name__ == '__main__':
    main()
