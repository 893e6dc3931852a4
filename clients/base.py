# clients/base.py
from typing import Any, Callable, Dict, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.context import AppContext
from core.filters import Filters, clean_params
from core.logger import get_logger
from core.models import Envelope, ErrorKind, FieldError

logger = get_logger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
BAD_RESPONSE_MESSAGE = "Unexpected response from server. Please try again later."

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Worth retrying: the request may never have reached the server.
TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout)

_STATUS_KINDS = {
    401: ErrorKind.UNAUTHENTICATED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
}

Parser = Callable[[Dict[str, Any]], Any]


def classify_failure(status: Optional[int], body: Dict[str, Any]) -> ErrorKind:
    """
    Map a failed response to an ErrorKind.
    An explicit `code` wins, then a non-empty `errors` array, then the HTTP status.
    """
    code = body.get("code")
    if isinstance(code, str):
        try:
            return ErrorKind(code.lower())
        except ValueError:
            logger.debug("Unknown error code %r; falling back to status.", code)

    if body.get("errors"):
        return ErrorKind.VALIDATION

    if status is None:
        return ErrorKind.UNKNOWN
    if status in _STATUS_KINDS:
        return _STATUS_KINDS[status]
    if 400 <= status < 500:
        return ErrorKind.RULE_VIOLATION
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def network_failure(message: str = NETWORK_ERROR_MESSAGE) -> Envelope:
    return Envelope(success=False, message=message, kind=ErrorKind.NETWORK)


class ApiClient:
    """
    Base for the per-resource clients.

    Every public call returns an Envelope; transport problems (connection
    errors, timeouts, undecodable bodies) are logged and folded into a
    NETWORK failure instead of being raised.
    """

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(max(1, self.ctx.max_attempts)),
            wait=wait_exponential_jitter(initial=self.ctx.retry_delay, max=30),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        logger.debug("%s %s", method, url)
        return self.ctx.session.request(
            method,
            url,
            headers=DEFAULT_HEADERS,
            timeout=self.ctx.timeout,
            **kwargs,
        )

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Filters] = None,
        json: Optional[Dict[str, Any]] = None,
        parse: Optional[Parser] = None,
    ) -> Envelope:
        url = self.ctx.url(path)
        kwargs: Dict[str, Any] = {}
        if params:
            kwargs["params"] = clean_params(params)
        if json is not None:
            kwargs["json"] = json

        try:
            if method == "GET":
                resp = self._retrying()(self._send, method, url, **kwargs)
            else:
                resp = self._send(method, url, **kwargs)
            body = resp.json()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            return network_failure()
        except ValueError as e:
            logger.error("%s %s returned a non-JSON body: %s", method, url, e)
            return network_failure()

        return self._to_envelope(method, url, resp.status_code, body, parse)

    def _to_envelope(
        self,
        method: str,
        url: str,
        status: int,
        body: Any,
        parse: Optional[Parser],
    ) -> Envelope:
        if not isinstance(body, dict):
            logger.error("%s %s returned %s instead of an envelope.", method, url, type(body).__name__)
            return Envelope(
                success=False, message=BAD_RESPONSE_MESSAGE,
                kind=ErrorKind.BAD_RESPONSE, status=status,
            )

        success = bool(body.get("success"))
        message = str(body.get("message") or "")
        errors = [
            FieldError.from_dict(e) for e in body.get("errors") or [] if isinstance(e, dict)
        ]

        if not success:
            kind = classify_failure(status, body)
            logger.warning(
                "%s %s failed (status=%s, kind=%s): %s",
                method, url, status, kind.value, message,
            )
            return Envelope(
                success=False, message=message, errors=errors, kind=kind, status=status,
            )

        data = body.get("data")
        if parse is not None and data is not None:
            try:
                data = parse(data)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.error("%s %s returned a malformed payload: %s", method, url, e)
                return Envelope(
                    success=False, message=BAD_RESPONSE_MESSAGE,
                    kind=ErrorKind.BAD_RESPONSE, status=status,
                )

        return Envelope(success=True, message=message, data=data, errors=errors, status=status)

    def get(self, path: str, params: Optional[Filters] = None, parse: Optional[Parser] = None) -> Envelope:
        return self._request("GET", path, params=params, parse=parse)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, parse: Optional[Parser] = None) -> Envelope:
        return self._request("POST", path, json=json if json is not None else {}, parse=parse)

    def put(self, path: str, json: Optional[Dict[str, Any]] = None, parse: Optional[Parser] = None) -> Envelope:
        return self._request("PUT", path, json=json if json is not None else {}, parse=parse)

    def patch(self, path: str, json: Optional[Dict[str, Any]] = None, parse: Optional[Parser] = None) -> Envelope:
        return self._request("PATCH", path, json=json if json is not None else {}, parse=parse)

    def delete(self, path: str, parse: Optional[Parser] = None) -> Envelope:
        return self._request("DELETE", path, parse=parse)


def drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}
