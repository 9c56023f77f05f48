"""HMAC-signed one-click action links embedded in notifications.

Token format: ``action=..&email=..&day=..&extra=..&iat=..&exp=..|<hex sha256>``
with ``iat``/``exp`` in epoch milliseconds and the email lowercased.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from urllib.parse import parse_qsl, quote, urlencode

from wordpanda.config import Settings

# Characters encodeURIComponent leaves alone, so tokens survive a browser round trip.
_URI_SAFE = "!~*'()"


class InvalidActionLinkError(ValueError):
    """The token is malformed, forged, expired, or bound to other parameters."""


def relearn_extra(word: str, meaning: str) -> str:
    """Signed ``extra`` for relearn links; binds both the word and the meaning it stores."""
    return f"{word}|{meaning}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ActionLinkSigner:
    """Builds and verifies signed links to the complete / relearn endpoints.

    With no secret configured, links are emitted unsigned and verification
    accepts tokenless requests. This is meant for local development only.
    """

    def __init__(self, secret: str, base_url: str, ttl_ms: int) -> None:
        self.secret = secret
        self.base_url = base_url.rstrip("/")
        self.ttl_ms = ttl_ms

    @classmethod
    def from_settings(cls, settings: Settings) -> ActionLinkSigner:
        return cls(
            secret=settings.action_link_secret,
            base_url=settings.dashboard_url,
            ttl_ms=settings.action_link_ttl_hours * 3600 * 1000,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.secret)

    def _signature(self, payload: str) -> str:
        return hmac.new(self.secret.encode(), payload.encode(), hashlib.sha256).hexdigest()

    def sign(
        self,
        action: str,
        email: str,
        day: int | str,
        extra: str = "",
        issued_at_ms: int | None = None,
    ) -> str:
        if not self.enabled:
            msg = "action_link_secret is required for signed action links"
            raise InvalidActionLinkError(msg)
        iat = issued_at_ms if issued_at_ms is not None else _now_ms()
        exp = iat + self.ttl_ms
        fields = [
            ("action", action),
            ("email", email.lower()),
            ("day", str(day)),
            ("extra", extra),
            ("iat", str(iat)),
            ("exp", str(exp)),
        ]
        payload = "&".join(f"{k}={quote(v, safe=_URI_SAFE)}" for k, v in fields)
        return f"{payload}|{self._signature(payload)}"

    def verify(
        self,
        token: str | None,
        action: str,
        email: str,
        day: int | str,
        extra: str = "",
        now_ms: int | None = None,
    ) -> None:
        """Raise InvalidActionLinkError unless ``token`` authorizes exactly these parameters."""
        if not self.enabled:
            return
        if not token or "|" not in token:
            msg = "Missing or malformed action token"
            raise InvalidActionLinkError(msg)

        payload, _, signature = token.rpartition("|")
        if not hmac.compare_digest(self._signature(payload), signature):
            msg = "Invalid action token signature"
            raise InvalidActionLinkError(msg)

        fields = dict(parse_qsl(payload, keep_blank_values=True))
        expected = {
            "action": action,
            "email": email.lower(),
            "day": str(day),
            "extra": extra,
        }
        for key, value in expected.items():
            if fields.get(key) != value:
                msg = f"Action token does not match {key}"
                raise InvalidActionLinkError(msg)

        try:
            expires_at = int(fields["exp"])
        except (KeyError, ValueError) as exc:
            msg = "Action token has no valid expiry"
            raise InvalidActionLinkError(msg) from exc
        if (now_ms if now_ms is not None else _now_ms()) > expires_at:
            msg = "Action token expired"
            raise InvalidActionLinkError(msg)

    def _url(self, path: str, params: dict[str, str], action: str, email: str, day: int, extra: str = "") -> str:
        if self.enabled:
            params["token"] = self.sign(action, email, day, extra)
        return f"{self.base_url}{path}?{urlencode(params)}"

    def complete_url(self, email: str, day: int) -> str:
        return self._url(
            "/api/v1/actions/complete",
            {"email": email, "day": str(day)},
            "complete",
            email,
            day,
        )

    def relearn_url(self, email: str, day: int, word: str, meaning: str) -> str:
        return self._url(
            "/api/v1/actions/relearn",
            {"email": email, "day": str(day), "word": word, "meaning": meaning},
            "relearn",
            email,
            day,
            extra=relearn_extra(word, meaning),
        )

    @property
    def dashboard_login_url(self) -> str:
        return f"{self.base_url}/login"

    @property
    def stats_url(self) -> str:
        return f"{self.base_url}/stats"
