"""Configuration management for the catalog taxonomy.

Reads configuration from ~/.config/catalog.toml and creates default config if needed.
"""

from pathlib import Path
from dataclasses import dataclass
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    busy_timeout: float
    log_level: str
    log_dir: Path
    list_page_size: int
    seed_file: Path

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "catalog"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="catalog.db",
            busy_timeout=5.0,
            log_level="INFO",
            log_dir=base_dir / "logs",
            list_page_size=100,
            seed_file=get_default_seed_file(),
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "catalog.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def get_default_seed_file() -> Path:
    """Get the path to the bundled category seed file."""
    return Path(__file__).parent / "db" / "seed" / "categories.json"


def load_config() -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Returns:
        Config object with loaded or default values.
    """
    config_path = get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    return config_from_dict(data)


def config_from_dict(data: dict) -> Config:
    """Build a Config from parsed TOML data, filling in defaults.

    Args:
        data: Parsed TOML document.

    Returns:
        Config object.

    Raises:
        ValueError: If a numeric setting is out of range.
    """
    defaults = Config.default()
    base_dir = Path(data.get("base_dir", defaults.base_dir))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", defaults.db_filename)
    busy_timeout = float(db_config.get("busy_timeout", defaults.busy_timeout))

    log_config = data.get("logging", {})
    log_level = log_config.get("level", defaults.log_level)
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    taxonomy_config = data.get("taxonomy", {})
    list_page_size = int(
        taxonomy_config.get("list_page_size", defaults.list_page_size)
    )
    seed_file = Path(taxonomy_config.get("seed_file", defaults.seed_file))

    if busy_timeout < 0:
        raise ValueError(f"database.busy_timeout must be >= 0, got {busy_timeout}")
    if not 1 <= list_page_size <= 1000:
        raise ValueError(
            f"taxonomy.list_page_size must be between 1 and 1000, got {list_page_size}"
        )

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        busy_timeout=busy_timeout,
        log_level=log_level,
        log_dir=log_dir,
        list_page_size=list_page_size,
        seed_file=seed_file,
    )


def _write_config(config: Config) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
            "busy_timeout": config.busy_timeout,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "taxonomy": {
            "list_page_size": config.list_page_size,
            "seed_file": str(config.seed_file),
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
