#!/usr/bin/env python3
"""Create the Cosmos DB containers and the first active admin account."""

import argparse
import logging
import sys

from studio_calendar.config import ConfigError, load_config
from studio_calendar.database import ensure_containers
from studio_calendar.errors import CommandError
from studio_calendar.staff_routes import create_first_admin

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        config = load_config()
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    ensure_containers(config)
    try:
        uid = create_first_admin(args.name, args.email, args.password)
    except CommandError as e:
        logger.error("Could not create admin: %s", e.message)
        return 1

    print(f"Admin created: {uid}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
