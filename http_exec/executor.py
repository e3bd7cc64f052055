"""Executor - Sends a Request and captures a Response or an Error.

The Executor turns one Request into one outbound httpx call and maps the
outcome into a Response (server answered with a JSON body) or an Error
(anything else). Per-call failures are returned as values, never raised.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Iterable, Mapping

import httpx

from http_exec.models import Error, ErrorKind, Request, RequestMethod, Response

logger = logging.getLogger(__name__)

# RFC 7230 token characters allowed in a header field name.
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# Header field values: visible ASCII, space and horizontal tab only.
_INVALID_HEADER_VALUE_CHAR = re.compile(r"[^\t\x20-\x7e]")

_SUPPORTED_SCHEMES = ("http", "https")


class ExecutorError(Exception):
    """Base class for executor errors."""


class RequestRejected(ExecutorError):
    """Raised internally when a Request cannot be turned into a valid call.

    Never escapes Executor.send_request; it is converted into an Error with
    the same kind.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


def _build_url(request: Request) -> httpx.URL:
    """Parse the request URL and merge GET params into its query string.

    Raises:
        RequestRejected: If the URL is malformed, relative, or not http(s).
    """
    try:
        url = httpx.URL(request.url)
    except httpx.InvalidURL as e:
        raise RequestRejected(ErrorKind.INVALID_URL, f"invalid URL: {e}") from e

    if url.scheme not in _SUPPORTED_SCHEMES:
        raise RequestRejected(
            ErrorKind.INVALID_URL,
            f"unsupported URL scheme {url.scheme!r}, expected http or https",
        )
    if not url.host:
        raise RequestRejected(ErrorKind.INVALID_URL, "URL has no host")

    if request.method is RequestMethod.GET and request.params:
        url = url.copy_merge_params(dict(request.params))
    return url


def _check_headers(headers: Mapping[str, str]) -> None:
    """Reject header names/values that cannot go on the wire unchanged.

    Raises:
        RequestRejected: On the first invalid name or value.
    """
    for name, value in headers.items():
        if not _HEADER_NAME.match(name):
            raise RequestRejected(ErrorKind.INVALID_HEADER, f"invalid header name {name!r}")
        bad = _INVALID_HEADER_VALUE_CHAR.search(value)
        if bad:
            raise RequestRejected(
                ErrorKind.INVALID_HEADER,
                f"invalid character {bad.group()!r} at position {bad.start()} "
                f"in value of header {name!r}. Header values must be ASCII "
                f"without control characters.",
            )


def _build_content(request: Request) -> bytes | None:
    """Raw body bytes for the outbound call. Only POST carries a body."""
    if request.method is RequestMethod.POST and request.body is not None:
        return request.body.encode("utf-8")
    return None


def _transport_error(exc: httpx.HTTPError) -> Error:
    """Classify an httpx failure, keeping whatever status/URL it can attribute."""
    url: str | None
    try:
        url = str(exc.request.url)
    except RuntimeError:
        # httpx raises when no request is attached to the exception
        url = None

    status: int | None = None
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code

    if isinstance(exc, httpx.TimeoutException):
        message = f"request timeout: {exc}"
    elif isinstance(exc, httpx.ConnectError):
        message = f"connection error: {exc}"
    else:
        message = f"request error: {exc}"

    return Error(kind=ErrorKind.TRANSPORT, status=status, url=url, message=message)


def _convert_response(response: httpx.Response) -> Response | Error:
    """Convert an httpx Response into a Response, or an Error if it can't be.

    Header names are copied from the raw wire headers so their case is not
    altered. Repeated fields with the same name are joined with ", ".
    """
    url = str(response.url)

    headers: dict[str, str] = {}
    for raw_name, raw_value in response.headers.raw:
        name = raw_name.decode("latin-1")
        try:
            value = raw_value.decode("utf-8")
        except UnicodeDecodeError as e:
            return Error(
                kind=ErrorKind.INVALID_RESPONSE_HEADER,
                status=response.status_code,
                url=url,
                message=f"value of response header {name!r} is not valid UTF-8: {e}",
            )
        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value

    if not response.content:
        return Error(
            kind=ErrorKind.MALFORMED_RESPONSE_BODY,
            status=response.status_code,
            url=url,
            message="response body is empty",
        )

    try:
        body: Any = response.json()
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError both land here
        return Error(
            kind=ErrorKind.MALFORMED_RESPONSE_BODY,
            status=response.status_code,
            url=url,
            message=f"response body is not valid JSON: {e}",
        )

    return Response(status=response.status_code, headers=headers, body=body)


class Executor:
    """Sends Requests over a shared httpx.AsyncClient.

    The client is shared by every call. The executor holds no per-call state
    and can be used from many concurrent tasks.

    Usage:
        async with httpx.AsyncClient() as client:
            executor = Executor(client)
            result = await executor.send_request(request)

    Or let the executor own its client:
        async with Executor() as executor:
            results = await executor.send_all(requests)
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the executor.

        Args:
            client: HTTP client to send through. If None, the executor creates
                    one with httpx defaults and closes it in aclose().
        """
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()

    async def __aenter__(self) -> "Executor":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()

    async def send_request(self, request: Request) -> Response | Error:
        """Execute one request.

        GET merges params into the URL's query string and sends no body.
        POST uses the URL as-is and sends body as raw UTF-8 content.

        Args:
            request: The request to execute.

        Returns:
            Response if the server answered with a JSON body, otherwise an
            Error describing why not.
        """
        try:
            url = _build_url(request)
            _check_headers(request.headers)
        except RequestRejected as e:
            logger.debug("Rejected %s %s: %s", request.method.value, request.url, e.message)
            return Error(kind=e.kind, url=request.url, message=e.message)

        logger.debug("Sending %s %s", request.method.value, url)

        try:
            http_response = await self._client.request(
                method=request.method.value,
                url=url,
                headers=dict(request.headers) if request.headers else None,
                content=_build_content(request),
            )
        except httpx.HTTPError as e:
            error = _transport_error(e)
            logger.debug("%s %s failed: %s", request.method.value, url, error.message)
            return error

        result = _convert_response(http_response)
        if isinstance(result, Error):
            logger.debug("%s %s returned unusable response: %s", request.method.value, url, result.message)
        else:
            logger.debug("%s %s -> %d", request.method.value, url, result.status)
        return result

    async def send_all(self, requests: Iterable[Request]) -> list[Response | Error]:
        """Execute requests concurrently. Results are in input order."""
        return list(await asyncio.gather(*(self.send_request(r) for r in requests)))


async def send_request(
    request: Request,
    client: httpx.AsyncClient | None = None,
) -> Response | Error:
    """Execute one request, with a short-lived client if none is given."""
    if client is not None:
        return await Executor(client).send_request(request)
    async with Executor() as executor:
        return await executor.send_request(request)
