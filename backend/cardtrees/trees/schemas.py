"""Request and response schemas for card tree endpoints and batch payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -- Requests --


class CreateTreeRequest(BaseModel):
    title: str = ""
    description: str = ""
    is_primary: bool = False


class CreateNodeRequest(BaseModel):
    card_name: str = ""
    parent_id: int | None = None
    position: int = 0


class UpdateNodeRequest(BaseModel):
    """Request body for PATCH /trees/{tree_id}/nodes/{node_id}. Replaces all three fields."""

    card_name: str = ""
    parent_id: int | None = None
    position: int = 0


class CreateAnnotationRequest(BaseModel):
    kind: str | None = None
    body: str = ""
    label: str | None = None
    tags: str | None = None
    source_post_id: int | None = None


class AttachTreePayloadRequest(BaseModel):
    """Body for POST /posts/{post_id}/trees: the tree_payload form field, raw or decoded."""

    tree_payload: str | dict | None = None


# -- Batch payload --


class TreePayloadAnnotation(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: str = ""
    body: str = ""
    label: str = ""
    tags: str = ""


class TreePayloadNode(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    temp_id: str = ""
    parent_temp_id: str | None = None
    card_name: str = ""
    position: int = 0
    annotations: list[TreePayloadAnnotation] = Field(default_factory=list)

    @field_validator("parent_temp_id", mode="before")
    @classmethod
    def blank_parent_is_root(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class TreePayloadTree(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = ""
    description: str = ""
    is_primary: bool = False
    nodes: list[TreePayloadNode] = Field(default_factory=list)


class TreePayload(BaseModel):
    trees: list[TreePayloadTree] = Field(default_factory=list)


# -- Responses --


class AnnotationKindsResponse(BaseModel):
    base_kinds: list[str]
    used_kinds: list[str]
