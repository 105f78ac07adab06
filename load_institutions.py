"""
Load institutions from a CSV file.

Expected columns: institution_name, rank, city, state, control, level, locale.
Only institution_name is required; lookup rows (states, cities, controls,
levels, locales) are created on first use.
"""

import argparse
import logging

import pandas as pd
from sqlalchemy.orm import Session

from database import SessionLocal, init_db
from models import City, Institution, InstitutionControl, InstitutionLevel, State, UrbanizationLocale

logger = logging.getLogger(__name__)

COLUMNS = ["institution_name", "rank", "city", "state", "control", "level", "locale"]


def read_institutions(path) -> pd.DataFrame:
    df = pd.read_csv(path)

    # Keep only known columns, add missing optional ones
    for column in COLUMNS:
        if column not in df.columns:
            df[column] = None
    df = df[COLUMNS].copy()

    # Drop rows without a name
    df["institution_name"] = df["institution_name"].astype("string").str.strip()
    df = df[df["institution_name"].notna() & (df["institution_name"] != "")]

    # Convert rank to a nullable positive int (e.g. "12", "12=", "n/a")
    rank = df["rank"].astype("string").str.extract(r"(\d+)", expand=False)
    rank = pd.to_numeric(rank, errors="coerce").astype("Int64")
    df["rank"] = rank.where((rank > 0).fillna(False))

    for column in ["city", "state", "control", "level", "locale"]:
        df[column] = df[column].astype("string").str.strip().replace("", pd.NA)

    return df.reset_index(drop=True)


def _value(row, column):
    value = row[column]
    return None if pd.isna(value) else value


class _Lookups:
    """Get-or-create cache for reference rows during one load."""

    def __init__(self, db: Session):
        self.db = db
        self.cache = {}

    def _get_or_create(self, model, **fields):
        key = (model, tuple(sorted(fields.items())))
        if key not in self.cache:
            row = self.db.query(model).filter_by(**fields).first()
            if row is None:
                row = model(**fields)
                self.db.add(row)
                self.db.flush()
            self.cache[key] = row
        return self.cache[key]

    def description(self, model, value):
        if value is None:
            return None
        return self._get_or_create(model, description=value).id

    def city(self, name, state_name):
        if name is None:
            return None
        state_id = self._get_or_create(State, name=state_name).id if state_name else None
        return self._get_or_create(City, name=name, state_id=state_id).id


def load_institutions(db: Session, df: pd.DataFrame) -> int:
    """Insert one institution per row. Returns the number loaded."""
    lookups = _Lookups(db)
    try:
        for _, row in df.iterrows():
            rank = _value(row, "rank")
            db.add(Institution(
                institution_name=row["institution_name"],
                rank=int(rank) if rank is not None else None,
                city_id=lookups.city(_value(row, "city"), _value(row, "state")),
                control_id=lookups.description(InstitutionControl, _value(row, "control")),
                level_id=lookups.description(InstitutionLevel, _value(row, "level")),
                locale_id=lookups.description(UrbanizationLocale, _value(row, "locale")),
            ))
        db.commit()
    except Exception as e:
        logger.error(f"Load failed: {str(e)}")
        db.rollback()
        raise
    return len(df)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("csv_path")
    args = parser.parse_args()

    init_db()
    df = read_institutions(args.csv_path)
    with SessionLocal() as db:
        total = load_institutions(db, df)
    logger.info(f"Total institutions loaded: {total}")
