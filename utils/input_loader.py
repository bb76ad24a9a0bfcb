import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import yaml  # type: ignore

from config.settings import DEFAULT_CATALOG_PATH
from models.errors import CatalogLoadError, RegistryLoadError
from models.inputs import ImportJobConfig, WorkbookOverrides
from models.reference_data import CriteriaCatalog, FacilityRegistry

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_yaml(path: PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_json(path: PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_import_job(path: PathLike) -> ImportJobConfig:
    data = load_yaml(path)
    return ImportJobConfig.model_validate(data)


def load_registry(path: PathLike) -> FacilityRegistry:
    """
    Load the facility registry from a JSON file.

    The file holds either a list of facilities or {"facilities": [...]}.
    """
    try:
        raw = load_json(path)
    except (OSError, ValueError) as e:
        raise RegistryLoadError(f"Could not read facility registry {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("facilities")
    if not isinstance(raw, list):
        raise RegistryLoadError(f"Facility registry {path} must contain a list of facilities")

    return FacilityRegistry.from_records(raw)


def load_catalog(path: Optional[PathLike] = None) -> CriteriaCatalog:
    path = path or DEFAULT_CATALOG_PATH
    try:
        data = load_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        raise CatalogLoadError(f"Could not read criteria catalog {path}: {e}") from e
    return CriteriaCatalog.from_mapping(data or {})


def load_overrides(facility_name: Optional[str] = None, month: Optional[int] = None,
                   year: Optional[int] = None) -> WorkbookOverrides:
    return WorkbookOverrides(facility_name=facility_name, month=month, year=year)


def load_batch_rows(path: PathLike, sheet_name: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Load batch import rows from CSV, Excel or JSON.

    Cells are read as text so that the validator sees what the user typed;
    blank cells become None.

    Args:
        path: Row file (.csv, .xlsx or .json)
        sheet_name: Excel sheet (first sheet when omitted)

    Returns:
        List of row dictionaries in file order
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        data = load_json(path)
        if isinstance(data, dict):
            data = data.get("rows", [])
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a list of rows")
        return [dict(row) for row in data]

    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    elif suffix in (".xlsx", ".xlsm"):
        df = pd.read_excel(path, sheet_name=sheet_name or 0, dtype=str, engine="openpyxl")
    else:
        raise ValueError(f"Unsupported row file format: {path.suffix}")

    df.columns = [str(column).strip() for column in df.columns]
    df = df.where(pd.notna(df), None)

    rows = []
    for record in df.to_dict(orient="records"):
        rows.append({
            key: (value.strip() or None) if isinstance(value, str) else value
            for key, value in record.items()
        })

    logger.info(f"Loaded {len(rows)} rows from {path.name}")
    return rows
