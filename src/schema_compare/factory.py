"""Profile resolution and schema provider factory.

Profiles live in ``schema-compare.toml``; a comparison names a source and
a target profile, either explicitly or through the file's ``source`` and
``target`` keys.

Usage:
    from schema_compare.factory import get_profile, get_provider

    config = load_compare_config()
    name, profile = get_profile(config, "prod")
    provider = get_provider(profile)
    graph = provider.fetch_schema()
"""

import logging
from urllib.parse import quote

from schema_compare.adapters.base import SchemaProvider
from schema_compare.adapters.postgres import PostgresSchemaProvider
from schema_compare.config.models import CompareConfig, DatabaseProfile
from schema_compare.schema.models import DatabaseType

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when a database profile is not configured."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted

    Example:
        >>> profile = DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss")
        >>> resolve_url(profile)
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_profile(config: CompareConfig, profile_name: str | None) -> tuple[str, DatabaseProfile]:
    """Look up a profile by name.

    Args:
        config: Loaded configuration
        profile_name: Profile name from schema-compare.toml

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no name is given or the profile is unknown
    """
    available = ", ".join(config.profiles.keys()) or "(none)"

    if not profile_name:
        raise ProfileNotFoundError(
            "No database profile selected.\n"
            f"Available profiles: {available}"
        )

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in schema-compare.toml.\n"
            f"Available profiles: {available}"
        )

    return profile_name, config.profiles[profile_name]


# ============================================================================
# Schema Provider Factory
# ============================================================================


def get_provider(profile: DatabaseProfile) -> SchemaProvider:
    """Create the schema provider for a profile.

    Args:
        profile: Database profile from config

    Returns:
        SchemaProvider bound to the profile's database

    Raises:
        NotImplementedError: If the profile's engine has no provider
    """
    if profile.provider == DatabaseType.POSTGRESQL:
        return PostgresSchemaProvider(resolve_url(profile))

    raise NotImplementedError(f"No schema provider for {profile.provider.value} databases")
