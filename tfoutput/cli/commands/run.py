"""Run command implementation."""

import logging
from argparse import Namespace

from tfoutput.config import ConfigLoader
from tfoutput.exceptions import ConfigValidationError, TfOutputError
from tfoutput.orchestrator import Orchestrator
from tfoutput.security.secrets import SecretsManager, install_masking_filter


logger = logging.getLogger(__name__)

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'error': logging.ERROR,
}


def configure_logging(args: Namespace, secrets_manager: SecretsManager) -> None:
    log_level = LOG_LEVELS[args.log_level]
    if args.debug:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    install_masking_filter(secrets_manager)


def run_plugin(args: Namespace) -> int:
    """
    Run the plugin.

    Returns:
        0 on success, 2 on invalid configuration, 1 on any other failure
    """
    secrets_manager = SecretsManager()
    configure_logging(args, secrets_manager)

    try:
        settings = ConfigLoader().load(vars(args))
        orchestrator = Orchestrator(settings, secrets_manager=secrets_manager)

        orchestrator.execute()
        return 0

    except ConfigValidationError as e:
        for error in e.errors:
            if error.path:
                logger.error(f"Validation error at {error.path}: {error.message}")
            else:
                logger.error(f"Validation error: {error.message}")
        return e.exit_code
    except TfOutputError as e:
        logger.error(f"Failed to execute plugin: {e}")
        return e.exit_code
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1
