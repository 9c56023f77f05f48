"""HMAC action link signing and verification."""

from urllib.parse import parse_qs, urlsplit

import pytest

from wordpanda.learning.action_links import ActionLinkSigner, InvalidActionLinkError, relearn_extra

HOUR_MS = 3600 * 1000
ISSUED = 1_772_400_000_000


@pytest.fixture
def signer() -> ActionLinkSigner:
    return ActionLinkSigner(secret="s3cret", base_url="https://panda.test/", ttl_ms=24 * HOUR_MS)


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestSignVerify:
    def test_round_trip(self, signer):
        token = signer.sign("complete", "a@example.com", 3, issued_at_ms=ISSUED)
        signer.verify(token, "complete", "a@example.com", 3, now_ms=ISSUED + HOUR_MS)

    def test_email_is_case_insensitive(self, signer):
        token = signer.sign("complete", "User@Example.com", 3, issued_at_ms=ISSUED)
        signer.verify(token, "complete", "user@example.com", 3, now_ms=ISSUED)

    def test_tampered_signature(self, signer):
        token = signer.sign("complete", "a@example.com", 3, issued_at_ms=ISSUED)
        with pytest.raises(InvalidActionLinkError):
            signer.verify(token[:-1] + ("0" if token[-1] != "0" else "1"), "complete", "a@example.com", 3, now_ms=ISSUED)

    def test_other_secret_rejected(self, signer):
        forged = ActionLinkSigner("other", "https://panda.test", HOUR_MS).sign("complete", "a@example.com", 3)
        with pytest.raises(InvalidActionLinkError):
            signer.verify(forged, "complete", "a@example.com", 3)

    @pytest.mark.parametrize(
        ("action", "email", "day", "extra"),
        [
            ("relearn", "a@example.com", 3, ""),
            ("complete", "b@example.com", 3, ""),
            ("complete", "a@example.com", 4, ""),
            ("complete", "a@example.com", 3, "word"),
        ],
    )
    def test_bound_to_parameters(self, signer, action, email, day, extra):
        token = signer.sign("complete", "a@example.com", 3, issued_at_ms=ISSUED)
        with pytest.raises(InvalidActionLinkError):
            signer.verify(token, action, email, day, extra=extra, now_ms=ISSUED)

    def test_expired(self, signer):
        token = signer.sign("complete", "a@example.com", 3, issued_at_ms=ISSUED)
        with pytest.raises(InvalidActionLinkError, match="expired"):
            signer.verify(token, "complete", "a@example.com", 3, now_ms=ISSUED + 25 * HOUR_MS)

    @pytest.mark.parametrize("token", [None, "", "no-separator"])
    def test_missing_or_malformed(self, signer, token):
        with pytest.raises(InvalidActionLinkError):
            signer.verify(token, "complete", "a@example.com", 3)


class TestUnsignedMode:
    def test_verify_accepts_anything(self):
        ActionLinkSigner("", "https://panda.test", HOUR_MS).verify(None, "complete", "a@example.com", 3)

    def test_sign_requires_secret(self):
        with pytest.raises(InvalidActionLinkError):
            ActionLinkSigner("", "https://panda.test", HOUR_MS).sign("complete", "a@example.com", 3)

    def test_urls_have_no_token(self):
        url = ActionLinkSigner("", "https://panda.test", HOUR_MS).complete_url("a@example.com", 3)
        assert "token" not in _query(url)


class TestUrls:
    def test_complete_url(self, signer):
        url = signer.complete_url("a@example.com", 5)
        assert url.startswith("https://panda.test/api/v1/actions/complete?")
        params = _query(url)
        assert params["email"] == "a@example.com"
        assert params["day"] == "5"
        signer.verify(params["token"], "complete", "a@example.com", 5)

    def test_relearn_url_binds_word_and_meaning(self, signer):
        url = signer.relearn_url("a@example.com", 5, "follow up", "후속 조치하다")
        params = _query(url)
        assert params["word"] == "follow up"
        assert params["meaning"] == "후속 조치하다"
        signer.verify(params["token"], "relearn", "a@example.com", 5, extra=relearn_extra("follow up", "후속 조치하다"))
        with pytest.raises(InvalidActionLinkError):
            signer.verify(params["token"], "relearn", "a@example.com", 5, extra=relearn_extra("other", "후속 조치하다"))
        with pytest.raises(InvalidActionLinkError):
            signer.verify(params["token"], "relearn", "a@example.com", 5, extra=relearn_extra("follow up", "엉뚱한 뜻"))

    def test_dashboard_urls(self, signer):
        assert signer.dashboard_login_url == "https://panda.test/login"
        assert signer.stats_url == "https://panda.test/stats"
