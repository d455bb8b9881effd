"""Configuration for RavenDB connection."""

import os

from dotenv import load_dotenv

from ticobot.constants import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_RAVENDB_DATABASE,
    DEFAULT_RAVENDB_URL,
)

# Load environment variables
load_dotenv()


class RavenDBConfig:
    """Configuration class for RavenDB connection details."""

    @staticmethod
    def get_url() -> str:
        """Get the RavenDB server URL from environment variables.

        Returns:
            str: RavenDB server URL (default: http://localhost:8080)
        """
        return os.getenv("RAVENDB_URL", DEFAULT_RAVENDB_URL)

    @staticmethod
    def get_database_name() -> str:
        """Get the RavenDB database name from environment variables.

        Returns:
            str: Database name (default: ticobot)
        """
        return os.getenv("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE)

    @staticmethod
    def get_match_threshold() -> float:
        """Get the minimum similarity a vector match must exceed.

        Returns:
            float: Value of VECTOR_MATCH_THRESHOLD (default: 0.0)
        """
        return float(os.getenv("VECTOR_MATCH_THRESHOLD", str(DEFAULT_MATCH_THRESHOLD)))
