"""
Main entry point for the PLM BOM engine.

Installed as the ``plm-bom`` console script; all commands live in
src.utils.bom_cli.
"""

import sys

from src.utils.bom_cli import main as cli_main
from src.utils.config import get_config


def main():
    """
    Main application entry point.

    Runs one BOM command and exits with its status code.
    """
    config = get_config()
    if config.is_development:
        print(f"{config.app_name} v{config.app_version} ({config.environment})", file=sys.stderr)

    sys.exit(cli_main())


if __name__ == "__main__":
    main()
