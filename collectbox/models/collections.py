"""Pydantic request models for collection, schema and submission routes."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

FieldKind = Literal["text", "number", "image", "choice"]


def _strip_non_empty(v: str, what: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{what} must not be empty")
    return v


class CreateCollectionRequest(BaseModel):
    name: str = Field(max_length=255)
    password: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_non_empty(cls, v: str) -> str:
        return _strip_non_empty(v, "name")

    @field_validator("password")
    @classmethod
    def empty_password_means_none(cls, v: Optional[str]) -> Optional[str]:
        # An empty password field in the create form means "no password"
        return v or None


class FieldDefinitionIn(BaseModel):
    label: str = Field(max_length=255)
    kind: FieldKind
    required: bool = False
    choice_options: Optional[List[str]] = None

    @field_validator("label")
    @classmethod
    def label_non_empty(cls, v: str) -> str:
        return _strip_non_empty(v, "label")

    @model_validator(mode="after")
    def options_only_for_choice(self) -> "FieldDefinitionIn":
        if self.kind != "choice" and self.choice_options:
            raise ValueError("choice_options are only allowed on choice fields")
        return self


class ReplaceFieldsRequest(BaseModel):
    fields: List[FieldDefinitionIn]


class AddSubmitterRequest(BaseModel):
    name: str = Field(max_length=255)

    @field_validator("name")
    @classmethod
    def name_non_empty(cls, v: str) -> str:
        return _strip_non_empty(v, "name")


class SubmitResponseRequest(BaseModel):
    submitter_name: str = Field(min_length=1, max_length=255)
    # Values: str | number | bool | {"kind": "attachment", "storage_id": "..."}
    responses: Dict[str, Any] = Field(default_factory=dict)


class VerifyPasswordRequest(BaseModel):
    password: str = ""


__all__ = [
    "FieldKind",
    "CreateCollectionRequest",
    "FieldDefinitionIn",
    "ReplaceFieldsRequest",
    "AddSubmitterRequest",
    "SubmitResponseRequest",
    "VerifyPasswordRequest",
]
