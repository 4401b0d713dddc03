from datetime import date
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CARDDEX_")

    debug: bool = False

    reference_db_path: Path = Path("data/default-cards.json")

    output_dir: Path = Path("output")

    # Printings whose latest tracked release predates this date keep their most
    # recent rarity as the original rarity.
    rarity_cutoff: date = date(2003, 6, 1)

    # Total copies of one printing above which a merged card is flagged "error".
    merge_copy_limit: int = 4

    # Formats whose rarity buckets use the earliest printed rarity.
    legacy_rarity_formats: frozenset[str] = frozenset({"oldschool", "premodern"})


settings = Settings()


# =============================================================================
# CARD DB ARTIFACT VERSIONS
# =============================================================================

GENERATOR_VERSION = "0.4.0"

SCHEMA_VERSION = "1.0.0"

# Groups of owned cards that are not part of the main collection
GROUP_KINDS = ("decks", "external", "proxy")
