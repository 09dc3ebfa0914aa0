"""Tests for Ratehook exception hierarchy."""

from ratehook.exceptions import (
    CredentialsError,
    MalformedRequestError,
    RatehookError,
    TransportError,
)


class TestRatehookError:
    """Tests for the base RatehookError class."""

    def test_error_message(self):
        """Should store and return message."""
        error = RatehookError("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"

    def test_to_dict(self):
        """Should convert to a serializable dict."""
        assert RatehookError("oops").to_dict() == {
            "error": {"code": "ratehook_error", "message": "oops"}
        }

    def test_inheritance(self):
        """All custom exceptions should inherit from RatehookError."""
        for exc in [CredentialsError("bad"), TransportError("down"), MalformedRequestError("bad")]:
            assert isinstance(exc, RatehookError)


class TestTransportErrors:
    """Tests for transport error classification."""

    def test_transport_error_not_malformed(self):
        """Plain transport errors are network failures."""
        error = TransportError("Request timeout")
        assert error.malformed is False
        assert error.code == "transport_error"
        assert error.to_dict()["error"]["malformed"] is False

    def test_malformed_is_transport_error(self):
        """Malformed requests are a kind of transport error."""
        error = MalformedRequestError("InvalidURL")
        assert isinstance(error, TransportError)
        assert error.malformed is True
        assert error.to_dict() == {
            "error": {"code": "malformed_request", "malformed": True, "message": "InvalidURL"}
        }

    def test_credentials_error_code(self):
        """CredentialsError should have its own code."""
        assert CredentialsError("x").code == "credentials_error"
