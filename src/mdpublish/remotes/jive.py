"""Jive REST API v3 remote adapter.

Creates, updates and deletes Jive documents.  The config file for a Jive
remote looks like::

    remote:
      adapter: jive
      baseUrl: https://jive.example.com/api/core/v3
      username: ${MDPUBLISH_USERNAME}
      password: ${MDPUBLISH_PASSWORD}
      requestTimeout: 60
      defaultExtraProps:
        jiveParentUri: https://jive.example.com/groups/engineering

Extra properties used on each tracked document:

``jiveParentUri`` (user)
    Browser URL of the place the document should live in.  The API needs a
    different identifier, which ``find_parent_place`` looks up.
``jiveParentPlaceId``, ``jiveParentApiUri`` (adapter)
    Place id and API URI resolved from ``jiveParentUri``.
``jiveContentId`` (adapter)
    Id used to update or delete the document.  Set on create, or looked up
    from the tracking tag or the remote URI.
``jiveTrackingTag`` (adapter)
    UUID tag stamped on the document at first write.  A create request that
    times out can still succeed server side; the tag lets the next run find
    the document without knowing its URI.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import requests
from requests.auth import HTTPBasicAuth

from ..core.client import RemoteResource
from ..exceptions import ConfigurationError, HttpError, PublishError
from ..file_handler import read_file_with_encoding
from ..sync.models import utcnow
from ..validators import validate_content, validate_title
from .jive_data import (
    DOCUMENT_TYPE_CODE,
    JiveContent,
    JivePlace,
    document_post_body,
)

if TYPE_CHECKING:
    from ..context import Context
    from ..sync.models import DocumentMetadata

logger = logging.getLogger(__name__)

JIVE_CONTENT_ID = "jiveContentId"
JIVE_PARENT_URI = "jiveParentUri"
JIVE_PARENT_API_URI = "jiveParentApiUri"
JIVE_PARENT_PLACE_ID = "jiveParentPlaceId"
JIVE_TRACKING_TAG = "jiveTrackingTag"

# Place filters in order of decreasing precision.  The search filter is slow
# and not guaranteed to find the place, so it runs last.
PLACE_FILTERS = (
    "relationship(member)",
    "relationship(following)",
    "relationship(owner)",
)

_OBJECT_ID_PATTERN = re.compile(r".*DOC-(\d+)-*.*")
_PLACE_NAME_PATTERN = re.compile(r".*/(.*)")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def jive_object_id(remote_uri: str) -> str:
    """Extract the object id from a document URL (``.../docs/DOC-1234``).

    Raises:
        ValueError: The URL does not contain a ``DOC-<n>`` segment.
    """
    match = _OBJECT_ID_PATTERN.fullmatch(urlparse(remote_uri).path)
    if match is None:
        raise ValueError(f"Unable to extract jive object id from {remote_uri}")
    return match.group(1)


def parent_place_name(parent_url: str) -> str:
    """Return the place name, i.e. the last path segment of *parent_url*.

    Raises:
        ValueError: *parent_url* has no path separator.
    """
    match = _PLACE_NAME_PATTERN.fullmatch(parent_url.rstrip("/"))
    if match is None:
        raise ValueError(f"Unable to extract parent place name from {parent_url}")
    return match.group(1)


def needs_content_id(metadata: DocumentMetadata) -> bool:
    """True when the document exists remotely but its content id is unknown."""
    if metadata.remote_uri is None:
        return False
    return not metadata.has_extra_property(JIVE_CONTENT_ID)


def needs_parent_place(context: Context, metadata: DocumentMetadata) -> bool:
    """True when a parent URL is configured but its API URI is unresolved."""
    props = context.extra_props_for_document(metadata)
    return JIVE_PARENT_URI in props and JIVE_PARENT_API_URI not in props


def set_tracking_tag_as_needed(metadata: DocumentMetadata) -> str:
    """Stamp a UUID tracking tag on *metadata* unless it already has one."""
    if not metadata.has_extra_property(JIVE_TRACKING_TAG):
        metadata.set_extra_property(JIVE_TRACKING_TAG, str(uuid.uuid4()))
    return metadata.get_extra_property(JIVE_TRACKING_TAG)


def update_metadata_from_content(
    metadata: DocumentMetadata, content: JiveContent
) -> DocumentMetadata:
    """Copy identifiers and timestamps from a content response onto *metadata*."""
    if content.published is not None:
        metadata.created_on = content.published
    if content.updated is not None:
        metadata.last_updated = content.updated

    html = content.resource_ref("html")
    if html:
        metadata.remote_uri = html

    if content.parent_place is not None:
        parent = content.parent_place
        if parent.html:
            metadata.set_extra_property(JIVE_PARENT_URI, parent.html)
        if parent.place_id:
            metadata.set_extra_property(JIVE_PARENT_PLACE_ID, parent.place_id)
        if parent.uri:
            metadata.set_extra_property(JIVE_PARENT_API_URI, parent.uri)

    if content.content_id:
        metadata.set_extra_property(JIVE_CONTENT_ID, content.content_id)

    logger.debug("Updated %s metadata from response content", metadata.source_path)
    return metadata


def update_metadata_from_place(
    metadata: DocumentMetadata, place: JivePlace
) -> DocumentMetadata:
    """Copy the resolved parent place identifiers onto *metadata*."""
    if place.place_id:
        metadata.set_extra_property(JIVE_PARENT_PLACE_ID, place.place_id)
    html = place.resource_ref("html")
    if html:
        metadata.set_extra_property(JIVE_PARENT_URI, html)
    api_uri = place.resource_ref("self")
    if api_uri:
        metadata.set_extra_property(JIVE_PARENT_API_URI, api_uri)

    logger.debug("Updated %s parent place from %s", metadata.source_path, place.display_name)
    return metadata


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class JiveRemote:
    """Publishes documents to a Jive instance through the v3 REST API.

    Authenticates with a bearer token when one is configured, otherwise
    with HTTP basic auth.
    """

    name = "jive"

    def __init__(
        self, context: Context, session: requests.Session | None = None
    ):
        self.context = context
        self.config = context.config.remote
        self.session = session if session is not None else self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.auth = self.authenticate
        session.headers["Accept"] = "application/json"
        return session

    @property
    def supports_native_markdown(self) -> bool:
        return self.config.supports_native_markdown

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def validate_config(self) -> None:
        """Require a base URL plus either a token or username and password."""
        missing: list[str] = []
        if not self.config.base_url:
            missing.append("remote.baseUrl")
        if not self.config.token:
            if not self.config.username:
                missing.append("remote.username")
            if not self.config.password:
                missing.append("remote.password")
        if missing:
            message = (
                "Jive remote configuration missing required properties: "
                + ", ".join(missing)
            )
            logger.warning(message)
            raise ConfigurationError(message)

    def authenticate(
        self, request: requests.PreparedRequest
    ) -> requests.PreparedRequest:
        if self.config.token:
            request.headers["Authorization"] = f"Bearer {self.config.token}"
            return request
        return HTTPBasicAuth(self.config.username or "", self.config.password or "")(
            request
        )

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _contents(self) -> RemoteResource[JiveContent]:
        return RemoteResource(
            self.session,
            self.config.base_url or "",
            JiveContent,
            path_segments=["contents"],
            params={"fields": JiveContent.FIELDS},
            timeout=self.config.request_timeout,
        )

    def _places(self) -> RemoteResource[JivePlace]:
        return RemoteResource(
            self.session,
            self.config.base_url or "",
            JivePlace,
            path_segments=["places"],
            params={"fields": JivePlace.FIELDS},
            timeout=self.config.request_timeout,
        )

    # ------------------------------------------------------------------
    # Capability
    # ------------------------------------------------------------------

    def create(self, metadata: DocumentMetadata) -> None:
        """Create the document, unless a previous run already did.

        ``POST /contents``, preceded by a lookup of the document and, when a
        parent URL is configured, of its parent place.
        """
        set_tracking_tag_as_needed(metadata)
        try:
            found = self.find_document(metadata) is not None
        except HttpError as exc:
            if exc.status_code != 404:
                raise
            found = False

        if found:
            logger.info(
                "Document %s (%s) already exists on remote, not recreating",
                metadata.source_path,
                metadata.remote_uri,
            )
            return

        if needs_parent_place(self.context, metadata):
            self.find_parent_place(metadata)

        content = self._contents().post(self._document_body(metadata))
        update_metadata_from_content(metadata, content)

    def update(self, metadata: DocumentMetadata) -> None:
        """``PUT /contents/<id>``, resolving the content id first if needed."""
        if needs_content_id(metadata):
            self.find_document(metadata)
        content_id = self.context.extra_props_for_document(metadata).get(
            JIVE_CONTENT_ID
        )
        if not content_id:
            raise PublishError(
                "Unable to resolve Jive content id for document. "
                "Manual intervention may be necessary.",
                metadata,
            )
        set_tracking_tag_as_needed(metadata)

        if needs_parent_place(self.context, metadata):
            self.find_parent_place(metadata)

        content = (
            self._contents()
            .with_path(content_id)
            .put(self._document_body(metadata))
        )
        update_metadata_from_content(metadata, content)

    def delete(self, metadata: DocumentMetadata) -> None:
        """Delete the document from Jive and mark it deleted.

        Jive answers a DELETE of an already-deleted document with 403, which
        is indistinguishable from a real permission problem.  The document is
        therefore looked up first, and a missing document counts as deleted.
        """
        try:
            content = self.find_document(metadata)
        except HttpError as exc:
            if exc.status_code != 404:
                raise
            content = None

        if content is None:
            logger.info(
                "Document %s not found on remote, assuming already deleted",
                metadata.source_path,
            )
            metadata.deleted_on = utcnow()
            return

        content_id = self.context.extra_props_for_document(metadata).get(
            JIVE_CONTENT_ID
        )
        if not content_id:
            raise PublishError("Remote document has no content id", metadata)
        self._contents().with_path(content_id).delete()
        metadata.deleted_on = utcnow()

    def find(self, metadata: DocumentMetadata) -> JiveContent | None:
        return self.find_document(metadata)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_document(self, metadata: DocumentMetadata) -> JiveContent | None:
        """Look the document up by tracking tag, then by its remote URI.

        On a match, the content id, remote URI, timestamps and parent place
        are copied onto *metadata*.

        Raises:
            PublishError: Neither a tracking tag nor a usable remote URI is
                known.
            HttpError: A lookup request failed.
        """
        filters: list[str] = []
        tracking_tag = metadata.get_extra_property(JIVE_TRACKING_TAG)
        if tracking_tag:
            filters.append(f"tag({tracking_tag})")
        if metadata.remote_uri:
            try:
                object_id = jive_object_id(metadata.remote_uri)
            except ValueError as exc:
                logger.debug("%s", exc)
            else:
                filters.append(f"entityDescriptor({DOCUMENT_TYPE_CODE},{object_id})")

        if not filters:
            raise PublishError(
                "Not enough information to find document on remote. "
                "Manual intervention may be necessary.",
                metadata,
            )

        for search in filters:
            logger.debug("Looking up %s with filter %s", metadata.source_path, search)
            content = self._contents().with_params(filter=search).paged().first()
            if content is not None:
                update_metadata_from_content(metadata, content)
                return content
        return None

    def find_parent_place(self, metadata: DocumentMetadata) -> None:
        """Resolve ``jiveParentUri`` to the place's API identifiers.

        Runs the relationship filters (member, following, owner) and finally
        a full text search for the place name, matching candidates on their
        display name.  The first match wins.  When nothing matches, the
        document is published without a parent and a warning is logged.
        """
        parent_url = self.context.extra_props_for_document(metadata)[JIVE_PARENT_URI]
        place_name = parent_place_name(parent_url)
        filters = [*PLACE_FILTERS, f"search({place_name})"]

        for search in filters:
            logger.debug("Looking for place %s with filter %s", place_name, search)
            try:
                for place in self._places().with_params(filter=search).paged():
                    if place.display_name == place_name:
                        update_metadata_from_place(metadata, place)
                        break
            except HttpError as exc:
                if exc.status_code != 404:
                    raise
                logger.debug("Filter %s returned 404, trying next", search)
                continue
            if not needs_parent_place(self.context, metadata):
                break

        if needs_parent_place(self.context, metadata):
            logger.warning(
                "Parent place %s (%s) not found. Document %s will not be part "
                "of any Jive place.",
                place_name,
                parent_url,
                metadata.source_path,
            )

    # ------------------------------------------------------------------
    # Request bodies
    # ------------------------------------------------------------------

    def _document_body(self, metadata: DocumentMetadata) -> JiveContent:
        is_valid, error = validate_title(metadata.title)
        if not is_valid:
            raise PublishError(error, metadata)

        if self.supports_native_markdown:
            path = self.context.source_path(metadata)
        else:
            path = self.context.converted_path(metadata)
            if path is None:
                raise PublishError("Document has not been converted", metadata)

        text, _encoding = read_file_with_encoding(path)
        is_valid, error = validate_content(text)
        if not is_valid:
            raise PublishError(error, metadata)

        tags = self.context.tags_for_document(metadata)
        tracking_tag = metadata.get_extra_property(JIVE_TRACKING_TAG)
        if tracking_tag and tracking_tag not in tags:
            tags.append(tracking_tag)

        props = self.context.extra_props_for_document(metadata)
        return document_post_body(
            metadata.title,
            text,
            tags,
            content_id=props.get(JIVE_CONTENT_ID),
            parent=props.get(JIVE_PARENT_API_URI),
        )
