from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class FileSummaryModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    type: str
    size: int
    textLength: int
    error: str | None = None


class AskResponseModel(BaseModel):
    """JSON body returned by the ask endpoint."""

    model_config = ConfigDict(extra="forbid")

    extracted: str
    answer: str | None
    files: list[FileSummaryModel]
    error: str | None = None


class OcrResponseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    type: str
    text: str
    textLength: int
    source: str | None = None
    warnings: list[str] = []


def validate_ask_response_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Validate an ask response; keys absent from the payload stay absent."""

    return AskResponseModel.model_validate(payload).model_dump(exclude_unset=True)


def ask_response_json_schema() -> dict[str, Any]:
    return AskResponseModel.model_json_schema()
