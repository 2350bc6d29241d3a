"""Pydantic schemas for the gateway, the aggregator and both upstream providers."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class PostalCodeRequest(BaseModel):
    """Gateway inbound body. A missing ``cep`` decodes as the empty string."""

    cep: str = ""

    @field_validator("cep", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return "" if value is None else value


class LocationInfo(BaseModel):
    code: str
    state: str
    city: str
    neighborhood: str
    street: str


class TemperatureReading(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city: str
    kelvin: float = Field(alias="temp_K")
    celsius: float = Field(alias="temp_C")
    fahrenheit: float = Field(alias="temp_F")

    @field_serializer("kelvin", "celsius", "fahrenheit")
    def _compact_number(self, value: float) -> float | int:
        # Whole degrees go out as 298, not 298.0.
        return int(value) if value.is_integer() else value


class ViaCepPayload(BaseModel):
    """Subset of the ViaCEP ``/ws/{cep}/json/`` response."""

    cep: str = ""
    logradouro: str = ""
    complemento: str = ""
    unidade: str = ""
    bairro: str = ""
    localidade: str = ""
    uf: str = ""
    ibge: str = ""
    gia: str = ""
    ddd: str = ""
    siafi: str = ""
    # Unknown codes come back as 200 with ``"erro": true`` (older API: ``"true"``).
    erro: Optional[Union[bool, str]] = None

    @property
    def not_found(self) -> bool:
        if isinstance(self.erro, str):
            return self.erro != ""
        return bool(self.erro)


class CurrentConditions(BaseModel):
    temp_c: float
    temp_f: float


class WeatherApiPayload(BaseModel):
    """Subset of the WeatherAPI ``/v1/current.json`` response."""

    current: CurrentConditions
