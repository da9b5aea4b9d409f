import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Load environment variables from .env file if it exists
load_dotenv()

# Paths
PROJ_ROOT = Path(__file__).resolve().parents[2]
logger.debug(f"PROJ_ROOT path is: {PROJ_ROOT}")

DATA_DIR = Path(os.getenv("TSEXPLORE_DATA_DIR", PROJ_ROOT / "data"))
RAW_DATA_DIR = DATA_DIR / "raw"
PROCESSED_DATA_DIR = DATA_DIR / "processed"

REPORTS_DIR = Path(os.getenv("TSEXPLORE_REPORTS_DIR", PROJ_ROOT / "reports"))
FIGURES_DIR = REPORTS_DIR / "figures"

LOG_LEVEL = os.getenv("TSEXPLORE_LOG_LEVEL", "INFO")


def get_path(name: str, dataset: str = "air_passengers") -> Path:
    """Get the canonical path for an output file.

    Centralizes output naming so CLI commands and notebooks agree on locations.

    Args:
        name: One of "derived", "decomposition", "seasonal", "histogram", "qq",
              "acf_pacf", "rolling", "scatter_3d", "gantt".
        dataset: Dataset name used as file prefix.

    Returns:
        Path to the output file.
    """
    paths = {
        "derived": PROCESSED_DATA_DIR / f"{dataset}_derived.csv",
        "decomposition": FIGURES_DIR / f"{dataset}_decomposition.png",
        "seasonal": FIGURES_DIR / f"{dataset}_seasonal.png",
        "histogram": FIGURES_DIR / f"{dataset}_histogram.png",
        "qq": FIGURES_DIR / f"{dataset}_qq.png",
        "acf_pacf": FIGURES_DIR / f"{dataset}_acf_pacf.png",
        "rolling": FIGURES_DIR / f"{dataset}_rolling.png",
        "scatter_3d": FIGURES_DIR / f"{dataset}_scatter_3d.png",
        "gantt": FIGURES_DIR / f"{dataset}_gantt.png",
    }
    if name not in paths:
        raise KeyError(f"Unknown output '{name}'. Valid: {list(paths.keys())}")
    return paths[name]
