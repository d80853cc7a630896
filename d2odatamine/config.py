"""Default paths and constants for D2O datamining."""
from pathlib import Path


D2O_SUFFIX = ".d2o"

# Game data lives under <game>/data/common in a standard install
COMMON_DATA_DIR = Path("data") / "common"


def derive_d2o_path(data_dir: Path, name: str) -> Path:
    """Derive a .d2o path from a bare name ("Items" or "Items.d2o")."""
    if not name.lower().endswith(D2O_SUFFIX):
        name += D2O_SUFFIX
    return data_dir / name


def derive_data_dir(game_dir: Path) -> Path:
    """Return the directory holding .d2o files for a game install or data dir."""
    common = game_dir / COMMON_DATA_DIR
    if common.is_dir():
        return common
    return game_dir


def list_d2o_files(data_dir: Path) -> list[Path]:
    """Return all .d2o files in the data directory, sorted by name."""
    return sorted(
        (p for p in data_dir.iterdir() if p.is_file() and p.suffix.lower() == D2O_SUFFIX),
        key=lambda p: p.name.lower(),
    )
