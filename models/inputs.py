from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.settings import SYSTEM_MAX_POINTS


class MatchingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    facility_threshold: float = Field(default=0.5, ge=0, le=1)
    ambiguity_margin: float = Field(default=0.02, ge=0, le=1)
    strict_ambiguity: bool = False
    min_core_length: int = Field(default=4, ge=1)
    item_confidence_threshold: float = Field(default=0.5, ge=0, le=1)


class ValidationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min_year: int = Field(default=2000, ge=1900)
    min_score: float = 0
    max_score: float = SYSTEM_MAX_POINTS
    total_tolerance: float = Field(default=0.1, ge=0)
    arithmetic_tolerance: float = Field(default=0.01, ge=0)
    expected_systems: int = Field(default=7, ge=1)


class ImportJobConfig(BaseModel):
    """
    Main input of an import job.
    """
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    registry_path: str
    store_path: str
    catalog_path: Optional[str] = None
    output_dir: str = "./data/output"
    max_workers: int = Field(default=4, ge=1, le=64)

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    @field_validator("registry_path", "store_path", "output_dir")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("required field is empty")
        return v


class FacilityInput(BaseModel):
    """
    Registry entry as returned by the facility registry provider.
    """
    model_config = ConfigDict(extra="ignore")

    id: Any
    name: str
    state: Optional[str] = None
    city: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("facility name is empty")
        return v


class CriteriaItemInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    number: str
    text: str
    max_points: float = Field(gt=0)
    sample_size: int = Field(default=3, ge=1)
    multiplier: float = 0.0
    input_type: str = "sample"

    @field_validator("number", mode="before")
    @classmethod
    def _number_as_text(cls, v: Any) -> str:
        return str(v).strip()

    @field_validator("input_type")
    @classmethod
    def _known_input_type(cls, v: str) -> str:
        if v not in ("binary", "sample"):
            raise ValueError(f"unknown input type: {v}")
        return v


class CriteriaSystemInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    system_number: int = Field(ge=1)
    name: str
    items: List[CriteriaItemInput] = Field(default_factory=list)


class CriteriaCatalogInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    systems: List[CriteriaSystemInput]


class WorkbookOverrides(BaseModel):
    """
    Values supplied with a workbook upload. They take precedence over the
    values extracted from the file.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    facility_name: Optional[str] = Field(default=None, alias="facilityName")
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=1900)
