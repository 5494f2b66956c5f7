import argparse
import os
from typing import List, Mapping, Optional, Sequence, Tuple
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from statbadge.domain.exceptions import ConfigurationError
from statbadge.domain.models import ServiceType

# Environment variable names
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_GITHUB_USERNAME = "GITHUB_USERNAME"
ENV_REPOSITORY_OWNER = "GITHUB_REPOSITORY_OWNER"
ENV_REPOSITORY = "GITHUB_REPOSITORY"
ENV_THEME = "BADGE_THEME"
ENV_OUTPUT_DIR = "BADGE_OUTPUT_DIR"
ENV_SERVICE = "BADGE_SERVICE"
ENV_STORAGE_URL = "BADGE_STORAGE_URL"

DEFAULT_THEME = "dark"
DEFAULT_OUTPUT_DIR = "./data"
DEFAULT_SERVICE = ServiceType.CONTRIBUTION.value

# Services that need the GitHub API (and therefore a token)
GITHUB_SERVICES = (ServiceType.CONTRIBUTION, ServiceType.STATS, ServiceType.LANGUAGES)
SERVICE_ORDER = (ServiceType.CONTRIBUTION, ServiceType.STATS, ServiceType.LANGUAGES, ServiceType.VISITOR)


class BadgeConfig(BaseModel):
    """Everything one invocation needs; nothing in the pipeline reads the environment."""
    model_config = ConfigDict(frozen=True)

    username: str = ""
    token: str = Field(default="", repr=False)
    theme: str = DEFAULT_THEME
    output_dir: str = DEFAULT_OUTPUT_DIR
    service: ServiceType = ServiceType.CONTRIBUTION
    storage_url: Optional[str] = Field(default=None, repr=False)
    hide_stats: Tuple[str, ...] = ()
    hide_languages: Tuple[str, ...] = ()
    languages_count: int = Field(default=5, ge=0)
    layout: str = Field(default="default", pattern="^(default|compact)$")

    def selected_services(self) -> List[ServiceType]:
        if self.service == ServiceType.ALL:
            return list(SERVICE_ORDER)
        return [self.service]

    def validate_required(self) -> None:
        """
        Raises ConfigurationError when the username, or a token for a GitHub-backed
        service, is missing.
        """
        if not self.username:
            raise ConfigurationError(
                f"GitHub username is required (--username, {ENV_GITHUB_USERNAME} or {ENV_REPOSITORY_OWNER})."
            )
        if not self.token and any(s in GITHUB_SERVICES for s in self.selected_services()):
            raise ConfigurationError(f"GitHub token is required (--token or {ENV_GITHUB_TOKEN}).")


def _split_list(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _default_username(environ: Mapping[str, str]) -> str:
    repository = environ.get(ENV_REPOSITORY, "")
    return (
        environ.get(ENV_GITHUB_USERNAME)
        or environ.get(ENV_REPOSITORY_OWNER)
        or (repository.split("/")[0] if "/" in repository else "")
    )


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statbadge",
        description="Render GitHub stats badges and cards as SVG files.",
    )
    parser.add_argument("--service", choices=[s.value for s in ServiceType],
                        default=environ.get(ENV_SERVICE) or DEFAULT_SERVICE,
                        help="Which badge to build ('all' builds every badge)")
    parser.add_argument("--username", default=_default_username(environ), help="GitHub login")
    parser.add_argument("--token", default=environ.get(ENV_GITHUB_TOKEN, ""), help="GitHub token")
    parser.add_argument("--theme", default=environ.get(ENV_THEME) or DEFAULT_THEME,
                        help="Theme name (default, dark, light)")
    parser.add_argument("--output-dir", default=environ.get(ENV_OUTPUT_DIR) or DEFAULT_OUTPUT_DIR,
                        help="Directory for SVG files and stored values")
    parser.add_argument("--storage-url", default=environ.get(ENV_STORAGE_URL) or None,
                        help="Database URL for the key/value store (file storage if unset)")
    parser.add_argument("--hide-stats", default="", help="Comma-separated stats to hide")
    parser.add_argument("--hide-languages", default="", help="Comma-separated languages to hide")
    parser.add_argument("--languages-count", type=int, default=5, help="Languages shown on the card")
    parser.add_argument("--layout", choices=["default", "compact"], default="default",
                        help="Languages card layout")
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BadgeConfig:
    """
    Builds the configuration from command-line flags, falling back to environment variables.
    """
    environ = os.environ if environ is None else environ
    args = build_parser(environ).parse_args(argv)

    try:
        return BadgeConfig(
            username=args.username.strip(),
            token=args.token.strip(),
            theme=args.theme,
            output_dir=args.output_dir,
            service=ServiceType(args.service),
            storage_url=args.storage_url,
            hide_stats=_split_list(args.hide_stats),
            hide_languages=_split_list(args.hide_languages),
            languages_count=args.languages_count,
            layout=args.layout,
        )
    except (ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
