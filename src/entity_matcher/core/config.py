"""Configuration management for entity-matcher."""

from pathlib import Path
import json

from pydantic import BaseModel, Field

from entity_matcher.analysis.matching_constants import MatchingDefaults


class MatchingConfig(BaseModel):
    """Configuration for the matching pipeline."""

    min_dice: float = Field(
        default=MatchingDefaults.MIN_DICE,
        ge=0.0,
        le=1.0,
        description="Minimum Dice score for a candidate pair",
    )
    heuristic_dice: float = Field(
        default=MatchingDefaults.HEURISTIC_DICE,
        ge=0.0,
        le=1.0,
        description="Score heuristic matching must exceed",
    )
    max_fine_iterations: int = Field(
        default=MatchingDefaults.MAX_FINE_ITERATIONS,
        ge=1,
        description="Upper bound on fine-matching iterations",
    )
    match_statements: bool = Field(default=True, description="Match statement blocks")


class OutputConfig(BaseModel):
    """Configuration for output settings."""

    output_dir: Path = Field(default=Path("./output"), description="Default output directory")
    default_format: str = Field(default="csv", description="Default output format (csv or json)")


class Config(BaseModel):
    """Main configuration for entity-matcher."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "Config":
        """Load configuration from a JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            data = json.load(f)

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a JSON file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            json.dump(self.model_dump(), f, indent=2, default=str)

    @classmethod
    def get_default(cls) -> "Config":
        """Get default configuration."""
        return cls()


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file or return default.

    Args:
        config_path: Path to configuration file. If None, the default
            locations are searched and the defaults used if none exists.

    Returns:
        Config object
    """
    if config_path is None:
        default_locations = [
            Path.home() / ".config" / "entity-matcher" / "config.json",
            Path.cwd() / "entity-matcher.json",
        ]

        for location in default_locations:
            if location.exists():
                return Config.load_from_file(location)

        return Config.get_default()

    return Config.load_from_file(config_path)
