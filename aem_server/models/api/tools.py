"""Argument models for the AEM MCP tools.

Each model doubles as the tool's published input schema
(``model_json_schema()``) and as the validator applied before any request is
built. Validation is strict: a number where a string is expected is a
violation, not something to coerce.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ToolArguments(BaseModel):
    """Base class for tool arguments."""

    model_config = ConfigDict(strict=True, extra="ignore")


class NoArguments(ToolArguments):
    """Arguments for tools that take none."""


# Pages


class PagePathArguments(ToolArguments):
    page_path: str = Field(
        min_length=1,
        description="JCR path of the page, e.g. /content/mysite/en/home",
    )


class ParentPathArguments(ToolArguments):
    parent_path: str = Field(
        min_length=1,
        description="JCR path of the parent node, e.g. /content/mysite/en",
    )


class CreatePageArguments(ToolArguments):
    parent_path: str = Field(
        min_length=1,
        description="JCR path of the parent page, e.g. /content/mysite/en",
    )
    page_name: str = Field(
        min_length=1,
        description="URL-safe name for the new page (used in the path), e.g. my-new-page",
    )
    template: str = Field(
        min_length=1,
        description="Path to the page template, e.g. /conf/mysite/settings/wcm/templates/content-page",
    )
    title: str = Field(description="Human-readable title for the page")


class UpdatePageArguments(PagePathArguments):
    properties: dict[str, str | int | float | bool | None] = Field(
        description=(
            'Key/value map of JCR properties to update, e.g. {"jcr:title": "New Title", '
            '"jcr:description": "..."}. Null values are skipped.'
        ),
    )


class DeletePageArguments(PagePathArguments):
    force: bool = Field(
        default=False,
        description="If true, delete the page even if it has children. Defaults to false.",
    )


class ReplicatePageArguments(PagePathArguments):
    action: Literal["Activate", "Deactivate"] = Field(
        default="Activate",
        description="Replication action: Activate (publish) or Deactivate (unpublish). Defaults to Activate.",
    )


# Search

SEARCH_FILTER_KEYS = ("path", "type", "fulltext", "orderby")


class SearchArguments(ToolArguments):
    """QueryBuilder search.

    Keys beyond the recognized filters are forwarded to QueryBuilder
    verbatim, in the order given (e.g. ``property``, ``property.value``,
    ``1_property``).
    """

    model_config = ConfigDict(strict=True, extra="allow")

    fulltext: str | None = Field(
        default=None, description="Full-text search term to find in content"
    )
    path: str | None = Field(
        default=None, description="Restrict search to this JCR path, e.g. /content/mysite"
    )
    type: str | None = Field(
        default=None,
        description="JCR node type filter, e.g. cq:Page, dam:Asset, nt:unstructured",
    )
    limit: int | None = Field(
        default=None, ge=-1, description="Maximum number of results to return (default 20)"
    )
    offset: int | None = Field(
        default=None,
        ge=0,
        description="Number of results to skip for pagination (default 0)",
    )
    orderby: str | None = Field(
        default=None, description="Property to sort results by, e.g. @jcr:created"
    )

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def accept_integral_floats(cls, value):
        """JSON clients may send 20.0 for 20."""
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @model_validator(mode="after")
    def check_extra_filters(self):
        """Passthrough filters must be scalar values."""
        for key, value in (self.model_extra or {}).items():
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise ValueError(
                    f"additional filter '{key}' must be a string, number or boolean"
                )
        return self

    def filters(self) -> dict[str, str | int | float | bool | None]:
        """All search parameters in insertion order, recognized keys first."""
        return self.model_dump(exclude_none=True)


# Assets


class AssetPathArguments(ToolArguments):
    asset_path: str = Field(
        min_length=1,
        description="JCR path of the asset, e.g. /content/dam/mysite/images/photo.jpg",
    )


class FolderPathArguments(ToolArguments):
    folder_path: str = Field(
        min_length=1,
        description="JCR path of the DAM folder, e.g. /content/dam/mysite/images",
    )


# Content fragments


class FragmentPathArguments(ToolArguments):
    fragment_path: str = Field(
        min_length=1,
        description="JCR path of the content fragment, e.g. /content/dam/mysite/fragments/article-1",
    )


class ListContentFragmentsArguments(FolderPathArguments):
    model_path: str | None = Field(
        default=None,
        description=(
            "Optional path to the Content Fragment Model to filter by, "
            "e.g. /conf/mysite/settings/dam/cfm/models/article"
        ),
    )


class CreateContentFragmentArguments(ToolArguments):
    parent_path: str = Field(
        min_length=1,
        description="JCR path of the parent DAM folder, e.g. /content/dam/mysite/fragments",
    )
    name: str = Field(
        min_length=1, description="URL-safe name for the new fragment, e.g. my-article"
    )
    model_path: str = Field(
        min_length=1,
        description="Path to the Content Fragment Model, e.g. /conf/mysite/settings/dam/cfm/models/article",
    )
    title: str = Field(description="Title of the content fragment")
    description: str | None = Field(
        default=None, description="Optional description of the content fragment"
    )


class UpdateContentFragmentArguments(FragmentPathArguments):
    properties: dict[str, str | list[str]] = Field(
        description=(
            "Key/value map of fragment properties to update. Values can be strings "
            "or arrays of strings for multi-value fields."
        ),
    )


__all__ = [
    "SEARCH_FILTER_KEYS",
    "ToolArguments",
    "NoArguments",
    "PagePathArguments",
    "ParentPathArguments",
    "CreatePageArguments",
    "UpdatePageArguments",
    "DeletePageArguments",
    "ReplicatePageArguments",
    "SearchArguments",
    "AssetPathArguments",
    "FolderPathArguments",
    "FragmentPathArguments",
    "ListContentFragmentsArguments",
    "CreateContentFragmentArguments",
    "UpdateContentFragmentArguments",
]
