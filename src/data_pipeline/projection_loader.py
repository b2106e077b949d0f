"""Projection loading from CSV and JSON exports.

Handles the quirks of hand-edited projection sheets:
- Header names vary between sources ("Name" vs "Player", "$" vs "Value")
- Dollar values with currency signs and thousands separators ("$1,050")
- Blank rows and rows without a player id
- Missing tiers, filled in from each player's percentile in the pool
"""

import json
import logging
from pathlib import Path
from typing import List

import pandas as pd

from src.data_pipeline.config import COLUMN_ALIASES, JSON_PLAYER_KEYS, SUPPORTED_EXTENSIONS
from src.inflation_engine.calculations import (
    get_percentile,
    normalize_tier,
    tier_from_percentile,
)
from src.inflation_engine.models import ProjectionRecord

logger = logging.getLogger(__name__)


class ProjectionLoadError(Exception):
    """Raised when a projection file cannot be read."""


def _parse_numeric(value):
    """Parse a dollar string that may contain '$' or commas ('$1,050' -> 1050.0)."""
    if pd.isna(value):
        return float("nan")
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).replace(",", "").replace("$", "").strip().strip('"')
    if s == "":
        return float("nan")
    try:
        return float(s)
    except ValueError:
        return float("nan")


class ProjectionLoader:
    """Reads a projection export into :class:`ProjectionRecord` objects."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_frame(self) -> pd.DataFrame:
        """Read the raw file into a DataFrame with canonical column names.

        Raises:
            ProjectionLoadError: If the file is missing, has an unsupported
                extension, or cannot be parsed.
        """
        if not self.path.exists():
            raise ProjectionLoadError(f"Projection file not found: {self.path}")

        suffix = self.path.suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            raise ProjectionLoadError(f"Unsupported projection file type: {suffix}")

        logger.info("Reading projections: %s", self.path.name)
        try:
            if suffix == ".csv":
                df = pd.read_csv(self.path, dtype=str, quotechar='"')
            else:
                df = self._read_json()
        except (OSError, ValueError) as e:
            raise ProjectionLoadError(f"Failed to read {self.path}: {e}") from e

        return self._normalize_columns(df)

    def _read_json(self) -> pd.DataFrame:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, dict):
            for key in JSON_PLAYER_KEYS:
                if isinstance(data.get(key), list):
                    data = data[key]
                    break
            else:
                raise ValueError("no player list found in JSON export")

        if not isinstance(data, list):
            raise ValueError("expected a list of players")
        return pd.DataFrame(data)

    @staticmethod
    def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
        """Rename known header spellings to canonical field names."""
        lookup = {}
        for canonical, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                lookup.setdefault(alias, canonical)

        renames = {}
        for col in df.columns:
            canonical = lookup.get(str(col).strip().lower())
            if canonical and canonical not in renames.values():
                renames[col] = canonical
        df = df.rename(columns=renames)

        for canonical in COLUMN_ALIASES:
            if canonical not in df.columns:
                df[canonical] = None
        return df

    def clean(self, df: pd.DataFrame) -> pd.DataFrame:
        """Coerce types, drop unusable rows and fill in missing tiers."""
        df = df.copy()

        # Exports without an id column use the player name as the id
        if df["player_id"].isna().all() and df["player_name"].notna().any():
            logger.warning("%s has no player id column, using names", self.path.name)
            df["player_id"] = df["player_name"]

        for col in ("player_id", "player_name", "position"):
            df[col] = df[col].where(df[col].notna(), "").astype(str).str.strip()

        missing_id = df["player_id"] == ""
        if missing_id.any():
            logger.warning("Dropping %d rows with no player id", missing_id.sum())
            df = df[~missing_id].copy()

        duplicated = df["player_id"].duplicated(keep="first")
        if duplicated.any():
            logger.warning(
                "Dropping %d duplicate player ids: %s",
                duplicated.sum(),
                df.loc[duplicated, "player_id"].tolist(),
            )
            df = df[~duplicated].copy()

        df["projected_value"] = df["projected_value"].apply(_parse_numeric).fillna(0.0)
        df["tier"] = df["tier"].apply(normalize_tier)

        sorted_values = sorted(df["projected_value"].tolist())
        missing_tier = df["tier"].isna()
        if missing_tier.any():
            df.loc[missing_tier, "tier"] = df.loc[missing_tier, "projected_value"].apply(
                lambda v: tier_from_percentile(get_percentile(v, sorted_values))
            )
            logger.info("Assigned percentile tiers to %d players", missing_tier.sum())

        return df.reset_index(drop=True)

    def load(self) -> List[ProjectionRecord]:
        df = self.clean(self.read_frame())
        records = [
            ProjectionRecord(
                player_id=row["player_id"],
                projected_value=float(row["projected_value"]),
                position=row["position"],
                tier=row["tier"],
                player_name=row["player_name"] or row["player_id"],
            )
            for _, row in df.iterrows()
        ]
        logger.info("Loaded %d projections from %s", len(records), self.path.name)
        return records


def load_projections(path: Path) -> List[ProjectionRecord]:
    """Convenience wrapper: read, clean and convert a projection file."""
    return ProjectionLoader(path).load()
