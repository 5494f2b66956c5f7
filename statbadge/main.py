import asyncio
import os
import sys
import logging
from typing import Dict, Optional, Sequence
from dotenv import load_dotenv

from statbadge.config import load_config
from statbadge.domain.exceptions import BadgeException, ConfigurationError
from statbadge.infrastructure.github_client import GitHubGraphQLClient
from statbadge.infrastructure.kv_store import create_storage
from statbadge.application.badge_service import BadgeService

logger = logging.getLogger(__name__)

ENV_GITHUB_OUTPUT = "GITHUB_OUTPUT"


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def write_action_outputs(outputs: Dict[str, str], output_file: Optional[str]) -> None:
    """Appends `name=value` lines to the GitHub Actions output file, when running in Actions."""
    if not output_file or not outputs:
        return
    with open(output_file, "a", encoding="utf-8") as file_handle:
        for name, value in outputs.items():
            file_handle.write(f"{name}={value}\n")


async def main(argv: Optional[Sequence[str]] = None) -> int:
    # Load environment variables from .env file
    load_dotenv()

    try:
        config = load_config(argv)
        config.validate_required()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    github_client = GitHubGraphQLClient(token=config.token)
    storage = create_storage(config.output_dir, config.storage_url)

    badge_service = BadgeService(
        github_client=github_client,
        storage=storage,
        config=config,
    )

    try:
        result = await badge_service.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user. Exiting.")
        return 130
    except BadgeException as e:
        logger.error(f"Badge generation failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"An unexpected error occurred: {e}")
        return 1

    write_action_outputs(result.outputs, os.getenv(ENV_GITHUB_OUTPUT))

    if not result.ok:
        logger.error(f"Failed badges: {', '.join(s.value for s in result.failed)}")
        return 1
    return 0


def run() -> None:
    configure_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
