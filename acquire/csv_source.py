"""Local file acquisition."""
from pathlib import Path

import pandas as pd
from loguru import logger


def read_csv_source(path, **read_kwargs) -> pd.DataFrame:
    """Load ``path`` with ``pandas.read_csv``; extra kwargs are passed through."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    df = pd.read_csv(path, **read_kwargs)
    logger.info("Read {} rows x {} columns from {}", len(df), len(df.columns), path)
    return df
