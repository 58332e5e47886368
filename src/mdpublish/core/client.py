"""Typed HTTP client for one REST resource.

``RemoteResource`` binds a ``requests.Session`` to a single resource path
and an entity model.  Single-item verbs parse the response body into the
entity; ``paged()`` walks a list endpoint lazily, one page per network
call, and only when the consumer asks for more items than are buffered.

Every failure (transport error, unexpected status, unparseable body, or a
missing session) surfaces as ``HttpError`` carrying the prepared request
and, when one was received, the response.

Usage:
    places = RemoteResource(session, base_url, JivePlace).with_path("places")
    for place in places.with_params(filter="relationship(member)").paged():
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Generic, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from ..exceptions import HttpError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_PAGE_SIZE = 25


class RemoteResource(Generic[T]):
    """A REST resource returning ``entity`` representations.

    Instances are immutable in spirit: ``with_path`` and ``with_params``
    return new resources, so a base resource can be shared and refined.

    Args:
        session: Session used for every request; carries auth and TLS settings.
        base_url: API root, e.g. ``https://jive.example.com/api/core/v3``.
        entity: Pydantic model each item is parsed into.
        path_segments: Path below ``base_url``.
        params: Query parameters sent with every request.
        headers: Extra headers sent with every request.
        timeout: Connect and read timeout per call, in seconds.
        allowed_status: Status codes accepted as success.  Empty means 2xx.
        page_size: Items requested per page by ``paged()``.
    """

    def __init__(
        self,
        session: requests.Session | None,
        base_url: str,
        entity: type[T],
        path_segments: Sequence[str] = (),
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: int = 30,
        allowed_status: Sequence[int] = (),
        page_size: int = DEFAULT_PAGE_SIZE,
        page_offset_param: str = "startIndex",
        page_size_param: str = "count",
        page_offset_field: str = "startIndex",
        page_size_field: str = "itemsPerPage",
        page_list_field: str = "list",
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.entity = entity
        self.path_segments = tuple(str(s) for s in path_segments)
        self.params = dict(params or {})
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.allowed_status = tuple(allowed_status)
        self.page_size = page_size
        self.page_offset_param = page_offset_param
        self.page_size_param = page_size_param
        self.page_offset_field = page_offset_field
        self.page_size_field = page_size_field
        self.page_list_field = page_list_field

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _copy(self, **changes) -> RemoteResource[T]:
        fields = {
            "session": self.session,
            "base_url": self.base_url,
            "entity": self.entity,
            "path_segments": self.path_segments,
            "params": self.params,
            "headers": self.headers,
            "timeout": self.timeout,
            "allowed_status": self.allowed_status,
            "page_size": self.page_size,
            "page_offset_param": self.page_offset_param,
            "page_size_param": self.page_size_param,
            "page_offset_field": self.page_offset_field,
            "page_size_field": self.page_size_field,
            "page_list_field": self.page_list_field,
        }
        fields.update(changes)
        return RemoteResource(**fields)

    def with_path(self, *segments: str) -> RemoteResource[T]:
        """Return a resource for a sub-path (e.g. ``contents/1234``)."""
        return self._copy(path_segments=self.path_segments + tuple(segments))

    def with_params(self, **params: Any) -> RemoteResource[T]:
        """Return a resource with additional query parameters."""
        merged = dict(self.params)
        merged.update(params)
        return self._copy(params=merged)

    def with_allowed_status(self, *codes: int) -> RemoteResource[T]:
        return self._copy(allowed_status=codes)

    @property
    def url(self) -> str:
        if not self.path_segments:
            return self.base_url
        return "/".join([self.base_url, *self.path_segments])

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def get(self) -> T:
        response = self._send("GET")
        return self._parse(response)

    def put(self, body: T) -> T:
        response = self._send("PUT", body=body)
        return self._parse(response)

    def post(self, body: T) -> T:
        response = self._send("POST", body=body)
        return self._parse(response)

    def delete(self) -> None:
        self._send("DELETE")

    def paged(self) -> PagedSequence[T]:
        """Lazy, forward-only sequence over a list endpoint.

        No request is made until the first item is consumed.
        """
        return PagedSequence(self)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        body: BaseModel | None = None,
    ) -> requests.Response:
        """Send one request and check its status.

        Raises:
            HttpError: No session, transport failure, or unexpected status.
        """
        query = dict(self.params)
        if params:
            query.update(params)

        request = requests.Request(
            method,
            self.url,
            params=query,
            headers=self.headers,
            json=(
                body.model_dump(by_alias=True, exclude_none=True, mode="json")
                if body is not None
                else None
            ),
        )

        if self.session is None:
            raise HttpError(
                f"No HTTP session available for {method} {self.url}; "
                "is the remote configured?"
            )

        prepared = self.session.prepare_request(request)
        logger.debug("%s %s", prepared.method, prepared.url)
        if prepared.body:
            logger.debug("Request body: %s", _truncate(prepared.body))

        try:
            response = self.session.send(
                prepared, timeout=(self.timeout, self.timeout)
            )
        except requests.RequestException as exc:
            raise HttpError(
                f"Unable to make request {prepared.method} {prepared.url}: {exc}",
                request=prepared,
            ) from exc

        logger.debug(
            "%s %s -> %d", prepared.method, prepared.url, response.status_code
        )

        if self._status_ok(response.status_code):
            return response

        expected = (
            ",".join(str(c) for c in self.allowed_status)
            if self.allowed_status
            else "20X"
        )
        raise HttpError(
            f"{prepared.method} {prepared.url} - {response.status_code} "
            f"(expected one of [{expected}])",
            request=prepared,
            response=response,
        )

    def _status_ok(self, status_code: int) -> bool:
        if self.allowed_status:
            return status_code in self.allowed_status
        return 200 <= status_code < 300

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Cannot parse response content: %s", exc)
            raise HttpError(
                "Cannot parse response content",
                request=response.request,
                response=response,
            ) from exc

    def _parse(self, response: requests.Response) -> T:
        payload = self._json(response)
        try:
            return self.entity.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Response does not match %s: %s", self.entity.__name__, exc)
            raise HttpError(
                f"Cannot parse response content as {self.entity.__name__}",
                request=response.request,
                response=response,
            ) from exc

    def _fetch_page(
        self, offset: int, count: int
    ) -> tuple[list[T], int, int, bool | None]:
        """Fetch one page.

        Returns:
            Tuple of (items, start_index, items_per_page, has_next_link).
            ``has_next_link`` is ``None`` when the response carries no
            ``links`` object at all.
        """
        response = self._send(
            "GET",
            params={
                self.page_size_param: count,
                self.page_offset_param: offset,
            },
        )
        payload = self._json(response)
        if not isinstance(payload, dict):
            raise HttpError(
                "Paged response is not a JSON object",
                request=response.request,
                response=response,
            )

        raw_items = payload.get(self.page_list_field) or []
        try:
            items = [self.entity.model_validate(item) for item in raw_items]
        except ValidationError as exc:
            raise HttpError(
                f"Cannot parse page items as {self.entity.__name__}",
                request=response.request,
                response=response,
            ) from exc

        start_index = payload.get(self.page_offset_field)
        if not isinstance(start_index, int):
            start_index = offset
        items_per_page = payload.get(self.page_size_field)
        if not isinstance(items_per_page, int) or items_per_page <= 0:
            items_per_page = count

        links = payload.get("links")
        has_next = None
        if isinstance(links, dict):
            has_next = bool(links.get("next"))
        return items, start_index, items_per_page, has_next


class PagedSequence(Generic[T]):
    """Forward-only, non-restartable iteration over a paged list endpoint.

    Pages are requested on demand.  Iteration stops after a page that is
    empty, shorter than the page size, or whose ``links`` object has no
    ``next`` entry.
    """

    def __init__(self, resource: RemoteResource[T]):
        self._resource = resource
        self._buffer: list[T] = []
        self._offset = 0
        self._finished = False
        self.requests_made = 0

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        while not self._buffer:
            if self._finished:
                raise StopIteration
            self._next_page()
        return self._buffer.pop(0)

    def _next_page(self) -> None:
        page_size = self._resource.page_size
        try:
            items, start_index, items_per_page, has_next = (
                self._resource._fetch_page(self._offset, page_size)
            )
        except HttpError:
            self._finished = True
            raise
        self.requests_made += 1

        logger.debug(
            "Fetched %d items from %s (startIndex=%d)",
            len(items),
            self._resource.url,
            start_index,
        )
        self._buffer.extend(items)
        self._offset += len(items)

        if (
            not items
            or len(items) < min(page_size, items_per_page)
            or has_next is False
        ):
            self._finished = True

    def first(self) -> T | None:
        """Return the first item, or ``None`` if the list is empty.

        Fetches at most one page.
        """
        return next(self, None)


def _truncate(body: bytes | str, limit: int = 500) -> str:
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    if len(text) > limit:
        return text[:limit] + "..."
    return text
