"""OAuth2 client-credentials token exchange with exponential backoff.

This module provides :class:`TokenExchanger`, which performs the
non-interactive Client Credentials grant (:rfc:`6749` section 4.4)
against a configured token endpoint and retries failed exchanges.

A failed exchange is anything that keeps a token from coming back: a
network error or unusable URL, a non-2xx status, or a body that cannot
be decoded into a token.  With a retry budget of ``n`` the exchanger
waits 1 s, 2 s, 4 s, ... between attempts (see :mod:`sand.backoff`) and,
once the budget is spent, raises
:class:`~sand.exceptions.AuthenticationError` chained from the last
failure.

A response that decodes but carries an empty ``access_token`` is *not*
a failure here; it is returned as-is and rejected by the broker.

See Also:
    :class:`sand.client.Client` -- the broker that owns an exchanger and
    caches what it returns.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import parse_qsl

import httpx
from pydantic import ValidationError

from sand.backoff import retry_schedule
from sand.exceptions import AuthenticationError
from sand.models import AccessToken, AuthStyle
from sand.output import OutputManager, get_output

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "text/plain")


class TokenResponseError(Exception):
    """The token endpoint answered, but not with a usable token response."""


# httpx.InvalidURL is not an HTTPError.
_EXCHANGE_ERRORS = (httpx.HTTPError, httpx.InvalidURL, TokenResponseError)


class TokenExchanger:
    """Fetch access tokens from an OAuth2 token endpoint.

    Args:
        client_id: OAuth2 client identifier.
        client_secret: OAuth2 client secret.
        token_url: Token endpoint, e.g. ``https://oauth.example.com/oauth2/token``.
        skip_tls_verify: Disable certificate verification.  Never in production.
        timeout: Per-attempt request timeout in seconds.
        auth_style: Where the client credentials go (header or form body).
        output: Diagnostics sink; the process-wide manager when ``None``.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        skip_tls_verify: bool = False,
        timeout: float = 30.0,
        auth_style: AuthStyle = AuthStyle.BASIC,
        output: Optional[OutputManager] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.skip_tls_verify = skip_tls_verify
        self.timeout = timeout
        self.auth_style = AuthStyle(auth_style)
        self._output = output

    @property
    def output(self) -> OutputManager:
        return self._output or get_output()

    def fetch(self, scopes: Optional[list[str]] = None, num_retry: int = 0) -> AccessToken:
        """Exchange the client credentials for a token, retrying *num_retry* times.

        Args:
            scopes: Requested scopes, sent space-separated in the given order.
            num_retry: Retries after the first failed attempt.  ``0`` makes
                exactly one attempt.

        Returns:
            The decoded :class:`~sand.models.AccessToken`.

        Raises:
            AuthenticationError: If every attempt failed.
        """
        try:
            return self._exchange(scopes)
        except _EXCHANGE_ERRORS as exc:
            last_error: Exception = exc

        for _retry, delay in retry_schedule(num_retry):
            self.output.warning(
                f"Sand token: retrying after {delay} sec because of error: {last_error}"
            )
            time.sleep(delay)
            try:
                return self._exchange(scopes)
            except _EXCHANGE_ERRORS as exc:
                last_error = exc

        raise AuthenticationError(str(last_error)) from last_error

    async def afetch(
        self, scopes: Optional[list[str]] = None, num_retry: int = 0
    ) -> AccessToken:
        """Async counterpart of :meth:`fetch`.

        Backoff waits use :func:`asyncio.sleep`, so cancelling the calling
        task aborts the retry loop at the next suspension point.
        """
        try:
            return await self._aexchange(scopes)
        except _EXCHANGE_ERRORS as exc:
            last_error: Exception = exc

        for _retry, delay in retry_schedule(num_retry):
            self.output.warning(
                f"Sand token: retrying after {delay} sec because of error: {last_error}"
            )
            await asyncio.sleep(delay)
            try:
                return await self._aexchange(scopes)
            except _EXCHANGE_ERRORS as exc:
                last_error = exc

        raise AuthenticationError(str(last_error)) from last_error

    # ------------------------------------------------------------------ #
    # Single attempts
    # ------------------------------------------------------------------ #

    def _exchange(self, scopes: Optional[list[str]]) -> AccessToken:
        response = httpx.post(
            self.token_url,
            verify=not self.skip_tls_verify,
            timeout=self.timeout,
            **self._request_kwargs(scopes),
        )
        return self._parse_response(response)

    async def _aexchange(self, scopes: Optional[list[str]]) -> AccessToken:
        async with httpx.AsyncClient(
            verify=not self.skip_tls_verify, timeout=self.timeout
        ) as client:
            response = await client.post(self.token_url, **self._request_kwargs(scopes))
        return self._parse_response(response)

    def _request_kwargs(self, scopes: Optional[list[str]]) -> dict[str, Any]:
        """Build the form body, headers, and auth for one token POST."""
        data: dict[str, str] = {"grant_type": "client_credentials"}
        if scopes:
            data["scope"] = " ".join(scopes)

        kwargs: dict[str, Any] = {
            "data": data,
            "headers": {"Accept": "application/json"},
        }
        if self.auth_style == AuthStyle.BASIC:
            kwargs["auth"] = (self.client_id, self.client_secret)
        else:
            data["client_id"] = self.client_id
            data["client_secret"] = self.client_secret
        return kwargs

    def _parse_response(self, response: httpx.Response) -> AccessToken:
        """Decode a token endpoint response into an :class:`AccessToken`.

        Raises:
            TokenResponseError: On a non-2xx status, an undecodable body, or
                a field of the wrong type.
        """
        if not response.is_success:
            raise TokenResponseError(
                f"Token request failed with status {response.status_code}: "
                f"{response.text}"
            )

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if content_type in _FORM_CONTENT_TYPES:
            token_data: dict[str, Any] = dict(parse_qsl(response.text))
        else:
            try:
                token_data = response.json()
            except ValueError as exc:
                raise TokenResponseError(f"Cannot decode token response: {exc}") from exc
            if not isinstance(token_data, dict):
                raise TokenResponseError("Token response is not a JSON object")

        expires_at: Optional[datetime] = None
        expires_in = token_data.get("expires_in")
        try:
            seconds = int(expires_in) if expires_in not in (None, "") else 0
        except (TypeError, ValueError) as exc:
            raise TokenResponseError(f"Invalid expires_in value: {expires_in!r}") from exc
        # A missing or zero expires_in means the token does not expire.
        if seconds:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=seconds)

        try:
            return AccessToken(
                access_token=token_data.get("access_token") or "",
                token_type=token_data.get("token_type") or "Bearer",
                expires_at=expires_at,
                scope=_granted_scope(token_data.get("scope")),
            )
        except ValidationError as exc:
            raise TokenResponseError(f"Malformed token response: {exc}") from exc


def _granted_scope(value: Any) -> Optional[str]:
    """Normalise the ``scope`` field; some authorities send a JSON list."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value)
    return None
