#!/usr/bin/env python3
"""
Run script for the workshop job backend
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file before the app reads them
load_dotenv()

from workshop import create_app  # noqa: E402
from workshop.build import build_database  # noqa: E402
from workshop.utils.logger import get_logger  # noqa: E402

# Default user credentials come from the environment.
# Run 'python generate_env.py' to create a .env file with secure passwords.

logger = get_logger("workshop.run")


def _env_flag(name, default='False'):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def parse_arguments():
    """Parse command line arguments for the build step"""
    parser = argparse.ArgumentParser(description='Workshop job backend')
    parser.add_argument('--build-only', action='store_true',
                        help='Build database tables and critical data only, do not start the server')
    parser.add_argument('--enable-debug-data', action='store_true', default=True,
                        help='Enable demo data insertion (default: enabled if flag not present)')
    parser.add_argument('--no-debug-data', action='store_false', dest='enable_debug_data',
                        help='Disable demo data insertion')
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()

    logger.debug("Starting workshop backend...")

    # Critical data is ALWAYS checked and inserted regardless of flags
    build_database(enable_debug_data=args.enable_debug_data, build_only=args.build_only)

    if args.build_only:
        logger.debug("Build completed. Exiting without starting web server.")
        sys.exit(0)

    debug_mode = _env_flag('FLASK_DEBUG')
    use_reloader = _env_flag('USE_RELOADER')
    host = os.environ.get('FLASK_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    app = create_app()
    logger.info(f"Starting server on {host}:{port} (debug={debug_mode}, reloader={use_reloader})")
    app.run(debug=debug_mode, host=host, port=port, use_reloader=use_reloader)
