"""Error types raised along the CEP → location → weather pipeline."""

from __future__ import annotations


class WeatherServiceError(RuntimeError):
    """Base error for failures anywhere in the lookup chain."""


class InvalidRequestBody(WeatherServiceError):
    """Inbound payload could not be decoded."""


class InvalidPostalCode(WeatherServiceError):
    """Postal code is not exactly eight ASCII digits."""

    def __init__(self, raw: object) -> None:
        super().__init__(f"invalid postal code: {raw!r}")
        self.raw = raw


class LocationNotFound(WeatherServiceError):
    """The geo provider answered, but knows no location for the code."""

    def __init__(self, code: str) -> None:
        super().__init__(f"no location for postal code {code}")
        self.code = code


class UpstreamTransportError(WeatherServiceError):
    """An outbound call failed or returned a body that could not be decoded."""


class RequestCancelled(UpstreamTransportError):
    """The inbound request was cancelled or ran out of time before an outbound hop."""


class UpstreamStatusError(WeatherServiceError):
    """The next internal stage responded with a non-200 status."""

    def __init__(self, status: int, body: bytes, content_type: str | None = None) -> None:
        super().__init__(f"upstream responded with status {status}")
        self.status = status
        self.body = body
        self.content_type = content_type


class UpstreamDecodeError(UpstreamTransportError):
    """An upstream answered, but its body is not the expected JSON document."""


class LocationLookupError(UpstreamTransportError):
    """The geo lookup stage failed."""


class WeatherLookupError(UpstreamTransportError):
    """The weather lookup stage failed."""
