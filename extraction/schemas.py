"""Pydantic models for the persisted extraction document and backend payloads.

Field aliases follow the camelCase JSON used by the extraction backend and
the session storage blob.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.extract_result import ExtractResult
from models.extraction_task import ExtractionTask


class ExtractResultDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    web_page_id: str = Field(..., alias="webPageId", min_length=1)
    web_page_title: str | None = Field(None, alias="webPageTitle")
    pois: list[dict[str, Any]] = Field(default_factory=list)
    non_pois: list[dict[str, Any]] = Field(default_factory=list, alias="nonPois")
    message: str | None = None

    @field_validator("pois", "non_pois", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    def to_domain(self) -> ExtractResult:
        return ExtractResult(
            web_page_id=self.web_page_id,
            pois=tuple(self.pois),
            non_pois=tuple(self.non_pois),
            message=self.message,
            web_page_title=self.web_page_title,
        )

    @classmethod
    def from_domain(cls, result: ExtractResult) -> "ExtractResultDTO":
        # Optional fields are only set when present so exclude_unset drops them
        fields: dict[str, Any] = {
            "web_page_id": result.web_page_id,
            "pois": [dict(p) for p in result.pois],
            "non_pois": [dict(n) for n in result.non_pois],
        }
        if result.web_page_title is not None:
            fields["web_page_title"] = result.web_page_title
        if result.message is not None:
            fields["message"] = result.message
        return cls(**fields)


class ExtractionTaskDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    web_page_ids: list[str] = Field(default_factory=list, alias="webPageIds")
    status: Literal["pending", "extracting", "completed", "failed"]
    results: list[ExtractResultDTO] | None = None
    error: str | None = None

    def to_domain(self) -> ExtractionTask:
        return ExtractionTask(
            web_page_ids=tuple(self.web_page_ids),
            status=self.status,
            results=(
                tuple(r.to_domain() for r in self.results) if self.results is not None else None
            ),
            error=self.error,
        )

    @classmethod
    def from_domain(cls, task: ExtractionTask) -> "ExtractionTaskDTO":
        fields: dict[str, Any] = {"web_page_ids": list(task.web_page_ids), "status": task.status}
        if task.results is not None:
            fields["results"] = [ExtractResultDTO.from_domain(r) for r in task.results]
        if task.error is not None:
            fields["error"] = task.error
        return cls(**fields)


class PersistedStateDTO(BaseModel):
    """
    Session storage document.

    Both collections are ordered [key, value] pair lists. The in-flight set is
    never part of this document.
    """

    model_config = ConfigDict(extra="ignore")

    tasks: list[tuple[str, ExtractionTaskDTO]] = Field(default_factory=list)
    results: list[tuple[str, ExtractResultDTO]] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_result_keys(self):
        for key, result in self.results:
            if key != result.web_page_id:
                raise ValueError(
                    f"results entry keyed {key!r} holds result for {result.web_page_id!r}"
                )
        return self
