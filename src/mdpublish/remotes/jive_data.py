"""Jive REST API v3 representations.

Only the fields the adapter reads or writes are modelled; everything else
in a response is ignored.  Jive uses camelCase keys except for the
``contentID`` and ``placeID`` identifiers.

See https://developers.jivesoftware.com/api/v3/cloud/rest/index.html
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..sync.models import parse_timestamp

DOCUMENT_TYPE = "document"
DOCUMENT_TYPE_CODE = 102


class _JiveModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class Link(_JiveModel):
    ref: str | None = None
    allowed: list[str] = Field(default_factory=list)


class JivePlace(_JiveModel):
    """A place (group, space or project) as returned by ``GET /places``."""

    FIELDS: ClassVar[str] = "id,resources,placeID,displayName,name,type,typeCode"

    id: int | None = None
    resources: dict[str, Link] = Field(default_factory=dict)
    place_id: str | None = Field(default=None, alias="placeID")
    display_name: str | None = None
    name: str | None = None
    type: str | None = None
    type_code: int | None = None

    def resource_ref(self, name: str) -> str | None:
        link = self.resources.get(name)
        return link.ref if link is not None else None


class ContentBody(_JiveModel):
    type: str | None = None
    text: str | None = None
    editable: bool | None = None


class Via(_JiveModel):
    """Attribution shown by Jive under the document ("via mdpublish")."""

    display_name: str = "mdpublish"
    url: str = "https://pypi.org/project/mdpublish/"


class ParentPlace(_JiveModel):
    id: int | None = None
    html: str | None = None
    place_id: str | None = Field(default=None, alias="placeID")
    name: str | None = None
    type: str | None = None
    uri: str | None = None


class JiveContent(_JiveModel):
    """A content item.  Documents have ``type == "document"`` (type code 102)."""

    FIELDS: ClassVar[str] = (
        "id,contentID,tags,updated,published,parentPlace,subject,"
        "resources,content,via,parent"
    )

    id: int | None = None
    content_id: str | None = Field(default=None, alias="contentID")
    published: datetime | None = None
    updated: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    type: str | None = None
    type_code: int | None = None
    subject: str | None = None
    content: ContentBody | None = None
    via: Via | None = None
    resources: dict[str, Link] = Field(default_factory=dict)
    parent: str | None = None
    # Only present in responses.
    parent_place: ParentPlace | None = None

    @field_validator("published", "updated", mode="before")
    @classmethod
    def _parse_jive_timestamp(cls, value):
        if isinstance(value, str):
            return parse_timestamp(value)
        return value

    def resource_ref(self, name: str) -> str | None:
        link = self.resources.get(name)
        return link.ref if link is not None else None


def document_post_body(
    title: str,
    text: str,
    tags: list[str],
    content_id: str | None = None,
    parent: str | None = None,
) -> JiveContent:
    """Build the request body for creating or updating a document.

    Args:
        title: Document subject.
        text: Rendered document body.
        tags: Remote tags, including the tracking tag.
        content_id: Existing Jive content id (updates only).
        parent: API URI of the parent place, when resolved.
    """
    return JiveContent(
        subject=title,
        content=ContentBody(type="text/html", text=text),
        type=DOCUMENT_TYPE,
        type_code=DOCUMENT_TYPE_CODE,
        tags=tags,
        content_id=content_id,
        parent=parent,
        via=Via(),
    )
