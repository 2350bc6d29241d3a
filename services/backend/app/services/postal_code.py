"""Postal code (CEP) validation."""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import ValidationError

from app.models.schemas import PostalCodeRequest
from app.services.errors import InvalidPostalCode, InvalidRequestBody

# ASCII only; ``\d`` would also accept other Unicode digits.
_CEP_PATTERN = re.compile(r"[0-9]{8}")


def is_valid_cep(value: object) -> bool:
    return isinstance(value, str) and _CEP_PATTERN.fullmatch(value) is not None


@dataclass(frozen=True)
class PostalCode:
    value: str

    @classmethod
    def parse(cls, raw: object) -> "PostalCode":
        """Return a validated postal code or raise :class:`InvalidPostalCode`."""
        if not is_valid_cep(raw):
            raise InvalidPostalCode(raw)
        return cls(raw)  # type: ignore[arg-type]

    def __str__(self) -> str:
        return self.value


def decode_postal_code_request(body: bytes) -> str:
    """Pull the raw ``cep`` string out of a gateway request body."""
    try:
        return PostalCodeRequest.model_validate_json(body).cep
    except ValidationError as exc:
        raise InvalidRequestBody(str(exc)) from exc
