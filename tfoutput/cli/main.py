"""Main CLI entry point for the plugin."""

import argparse
import os
import sys
from typing import Mapping, Optional

from tfoutput import __version__
from tfoutput.config import DEFAULT_ENV_FILE, DEFAULT_ENV_PREFIX
from .commands import run_plugin


# (flag, dest, environment variable, help)
STRING_OPTIONS = [
    ('--ca-cert', 'ca_cert', 'PLUGIN_CA_CERT',
     'CA cert to add to the trust store so terraform can reach internal resources'),
    ('--init-options', 'init_options', 'PLUGIN_INIT_OPTIONS',
     'Options for the init command as a JSON or YAML mapping'),
    ('--netrc-machine', 'netrc_machine', 'DRONE_NETRC_MACHINE', 'netrc machine'),
    ('--netrc-username', 'netrc_username', 'DRONE_NETRC_USERNAME', 'netrc username'),
    ('--netrc-password', 'netrc_password', 'DRONE_NETRC_PASSWORD', 'netrc password'),
    ('--role-arn-to-assume', 'role_arn_to_assume', 'PLUGIN_ROLE_ARN_TO_ASSUME',
     'A role to assume before running the terraform commands'),
    ('--root-dir', 'root_dir', 'PLUGIN_ROOT_DIR',
     'Directory holding the terraform files (default: current directory)'),
    ('--tf-version', 'tf_version', 'PLUGIN_TF_VERSION', 'Terraform version to install and use'),
    ('--tf-data-dir', 'tf_data_dir', 'PLUGIN_TF_DATA_DIR',
     'Where terraform keeps its per-working-directory data'),
]

BOOL_OPTIONS = [
    ('--sensitive', 'sensitive', 'PLUGIN_SENSITIVE', 'Do not echo terraform commands to stdout'),
    ('--export-envs', 'export_envs', 'PLUGIN_EXPORT_ENVS', 'Prefix env file lines with "export "'),
]


def create_parser(environ: Optional[Mapping[str, str]] = None) -> argparse.ArgumentParser:
    """
    Create the argument parser.

    Every option falls back to its environment variable, so the plugin can
    be configured entirely through PLUGIN_* settings.
    """
    environ = os.environ if environ is None else environ

    parser = argparse.ArgumentParser(
        prog='tf-output-env',
        description='Run terraform init and publish its outputs as environment variables'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run_parser = subparsers.add_parser('run', help='Initialize terraform and write the env file')

    for flag, dest, env_var, help_text in STRING_OPTIONS:
        run_parser.add_argument(
            flag,
            dest=dest,
            type=str,
            default=environ.get(env_var, ''),
            help=f'{help_text} [${env_var}]'
        )

    for flag, dest, env_var, help_text in BOOL_OPTIONS:
        run_parser.add_argument(
            flag,
            dest=dest,
            action='store_true',
            default=environ.get(env_var),  # Raw string, validated by ConfigLoader
            help=f'{help_text} [${env_var}]'
        )

    run_parser.add_argument(
        '--env-prefix',
        dest='env_prefix',
        type=str,
        default=environ.get('PLUGIN_ENV_PREFIX', DEFAULT_ENV_PREFIX),
        help='Prefix for the environment variable names [$PLUGIN_ENV_PREFIX]'
    )
    run_parser.add_argument(
        '--envfile',
        dest='envfile',
        type=str,
        default=environ.get('PLUGIN_ENVFILE', DEFAULT_ENV_FILE),
        help='The env file to write [$PLUGIN_ENVFILE]'
    )
    run_parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    run_parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error log output'
    )
    run_parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help='Set log level'
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return run_plugin(parsed_args)

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
