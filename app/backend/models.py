"""
Pydantic models for the invoice extraction pipeline.

Defines the two schema representations used by the service (the editor's
field tree and the root/items form sent to the LLM) plus the request and
response bodies of the API.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class SchemaFieldType(str, Enum):
    """Kinds of node in a schema tree."""

    FIELD = "field"
    GROUP = "group"


class SchemaField(BaseModel):
    """
    A node of the schema tree as edited by the user.

    Attributes:
        id: Editor identifier ("1", "4.2", ...). Not meaningful to extraction.
        name: Key the value is extracted under.
        type: Leaf field or group of repeated fields.
        description: Description to guide AI extraction.
        fields: Child fields. Required (non-empty) for groups, absent for leaves.
    """

    id: str = Field(..., description="Editor identifier for the field")
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Field name",
        examples=["company", "unit_price"],
    )
    type: SchemaFieldType = Field(
        default=SchemaFieldType.FIELD,
        description="Leaf field or group",
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Description to guide AI extraction",
        examples=["name of company"],
    )
    fields: list["SchemaField"] | None = Field(
        default=None,
        description="Child fields of a group",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Reject names that are only whitespace."""
        if not v.strip():
            raise ValueError("Field name must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def check_children(self) -> "SchemaField":
        """Groups carry children, leaves do not."""
        if self.type == SchemaFieldType.GROUP:
            if not self.fields:
                raise ValueError(f"Group '{self.name}' must contain at least one field")
        else:
            if self.fields:
                raise ValueError(f"Field '{self.name}' is not a group and cannot have fields")
            self.fields = None
        return self


class ApiFieldSpec(BaseModel):
    """Type and description of one field in the root/items schema form."""

    type: str = Field(default="string", description="Value type (always string)")
    description: str = Field(default="", description="Description to guide AI extraction")


class ApiSchema(BaseModel):
    """
    Root/items form of a schema, as sent to the extraction endpoints.

    Both mappings keep declaration order, which drives column order
    in the exported spreadsheet.
    """

    root: dict[str, ApiFieldSpec] | None = Field(
        default=None,
        description="Fields extracted once per document",
    )
    items: dict[str, ApiFieldSpec] | None = Field(
        default=None,
        description="Fields extracted once per entry of the items list",
    )
    items_description: str = Field(
        default="list of items purchased",
        description="Description of the repeated items list",
    )


class ExtractTextResponse(BaseModel):
    """Response model for the PDF text extraction endpoint."""

    text: str = Field(..., description="Full text of the document")
    file_name: str = Field(..., description="Original filename")
    page_count: int = Field(..., ge=0, description="Number of pages in the PDF")
    parser: str = Field(..., description="Backend that produced the text")


class ProcessRequest(BaseModel):
    """Request model for structured extraction from document text."""

    text: str | None = Field(default=None, description="Document text")
    schema_definition: ApiSchema | None = Field(
        default=None,
        description="Schema to extract",
        alias="schema",
    )


class DownloadRequest(BaseModel):
    """Request model for spreadsheet export."""

    data: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Extracted documents, one worksheet each",
    )
    schema_definition: ApiSchema | None = Field(
        default=None,
        description="Schema whose fields become the columns",
        alias="schema",
    )

    @field_validator("data", mode="before")
    @classmethod
    def wrap_single_document(cls, v: Any) -> Any:
        """Accept a single document object as a one-element list."""
        if isinstance(v, dict):
            return [v]
        return v


class SchemaConversionResponse(BaseModel):
    """Both representations of one schema."""

    tree: list[SchemaField] = Field(..., description="Editor tree form")
    api_schema: ApiSchema = Field(..., description="Root/items form")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")
