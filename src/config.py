"""
Configuration module for the PawMatch Discovery Service.

Loads environment variables and provides configuration singletons.
Uses pydantic for validation.
"""

from pydantic_settings import BaseSettings
from typing import Optional
import os


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All values come from .env file or system environment.
    Type hints provide validation (pydantic converts types automatically).
    """

    # ============================================================
    # FIREBASE CONFIGURATION (REQUIRED)
    # ============================================================
    FIREBASE_PROJECT_ID: str
    """Firebase project ID. Find in Firebase Console → Project Settings."""

    GOOGLE_APPLICATION_CREDENTIALS: str = "/config/serviceAccountKey.json"
    """Path to Firebase service account JSON file."""

    # ============================================================
    # DISCOVERY CONFIGURATION
    # ============================================================
    CANDIDATE_PAGE_SIZE: int = 100
    """Profiles read per Firestore page while scanning for candidates. Default: 100."""

    DEFAULT_RADIUS_KM: float = 5.0
    """Match radius used when the request does not specify one."""

    MIN_RADIUS_KM: float = 1.0
    """Smallest radius a match request may ask for. Smaller values are raised to this."""

    MAX_RADIUS_KM: float = 100.0
    """Largest radius a match request may ask for. Larger values are lowered to this."""

    MATCH_RESULT_LIMIT: int = 10
    """Number of ranked matches returned."""

    SEARCH_FETCH_LIMIT: int = 20
    """Maximum name-matching rows fetched for a search before exclusions."""

    SEARCH_QUERY_MAX_LENGTH: int = 100
    """Search queries are truncated to this many characters."""

    LEXICON_PATH: Optional[str] = None
    """Optional JSON file overriding the energy/breed-size lookup tables."""

    # ============================================================
    # RATE LIMITING
    # ============================================================
    RATE_LIMIT_WINDOW_MINUTES: int = 15
    """Sliding window length used when a caller does not pass window_minutes."""

    RATE_LIMIT_MAX_ATTEMPTS: int = 5
    """Attempts allowed per window when a caller does not pass max_attempts."""

    # ============================================================
    # SECURITY CONFIGURATION
    # ============================================================
    SERVICE_TOKEN: str = ""
    """Shared secret for authenticating requests from the app backend. Empty disables the check."""

    # ============================================================
    # SERVER CONFIGURATION
    # ============================================================
    PORT: int = 8000
    """Port to run FastAPI server on. Default: 8000."""

    HOST: str = "0.0.0.0"
    """Host to bind to. 0.0.0.0 = accessible from network."""

    DEBUG: bool = False
    """Enable debug logging. Set True for development, False for production."""

    LOG_FILE: str = "logs/pawmatch.log"
    """Rotating DEBUG log file. Empty string logs to the console only."""

    class Config:
        """Pydantic configuration."""
        env_file = ".env"  # Read from .env file
        case_sensitive = True  # Variable names are case-sensitive
        extra = "ignore"  # Ignore extra env vars not defined above


# ============================================================
# SINGLETON INSTANCE
# ============================================================
# Load config once at startup, reuse throughout app
config = Config()


# ============================================================
# VALIDATION AT STARTUP
# ============================================================
def validate_config() -> dict:
    """
    Validate that required config values are set and consistent.

    Called at app startup to fail fast if config is incomplete.

    Returns:
        dict: Status of each checked area

    Raises:
        ValueError: If required config is missing or inconsistent
    """
    errors = []

    if not config.FIREBASE_PROJECT_ID:
        errors.append("FIREBASE_PROJECT_ID is required")

    if config.CANDIDATE_PAGE_SIZE <= 0:
        errors.append("CANDIDATE_PAGE_SIZE must be positive")

    if config.MIN_RADIUS_KM <= 0:
        errors.append("MIN_RADIUS_KM must be positive")
    if config.MIN_RADIUS_KM > config.MAX_RADIUS_KM:
        errors.append("MIN_RADIUS_KM must not exceed MAX_RADIUS_KM")
    if not config.MIN_RADIUS_KM <= config.DEFAULT_RADIUS_KM <= config.MAX_RADIUS_KM:
        errors.append("DEFAULT_RADIUS_KM must lie between MIN_RADIUS_KM and MAX_RADIUS_KM")

    if config.RATE_LIMIT_WINDOW_MINUTES <= 0:
        errors.append("RATE_LIMIT_WINDOW_MINUTES must be positive")
    if config.RATE_LIMIT_MAX_ATTEMPTS <= 0:
        errors.append("RATE_LIMIT_MAX_ATTEMPTS must be positive")

    if config.LEXICON_PATH and not os.path.isfile(config.LEXICON_PATH):
        errors.append(f"LEXICON_PATH does not exist: {config.LEXICON_PATH}")

    if errors:
        raise ValueError(f"Configuration errors:\n" + "\n".join([f"  - {e}" for e in errors]))

    return {
        "firebase": "✓ Configured" if config.FIREBASE_PROJECT_ID else "✗ Missing",
        "lexicons": f"✓ {config.LEXICON_PATH}" if config.LEXICON_PATH else "✓ Built-in",
        "auth": "✓ Token required" if config.SERVICE_TOKEN else "✗ Open",
        "rate_limit": f"✓ {config.RATE_LIMIT_MAX_ATTEMPTS}/{config.RATE_LIMIT_WINDOW_MINUTES}min",
    }


if __name__ == "__main__":
    """Allow testing config by running: python -m src.config"""
    try:
        status = validate_config()
        print("✅ Configuration is valid!")
        print("\nConfiguration Status:")
        for key, value in status.items():
            print(f"  {key}: {value}")
    except ValueError as e:
        print(f"❌ Configuration error:\n{e}")
        exit(1)
