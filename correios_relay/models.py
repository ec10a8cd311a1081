"""
Data models for the Correios relay.
Defines the access credential, the client request and the tracking payload
returned by the carrier.
"""

import re
from datetime import datetime
from typing import Any, Optional
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    TypeAdapter,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Correios sends the expiry without timezone, e.g. "2024-05-10T18:30:00"
EXPIRY_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Fractional seconds may follow the seconds field, as in "2024-05-10T18:30:00.123"
_EXPIRY_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?")


def parse_expiry(value: str) -> datetime:
    """Parse a carrier expiry as naive local time, fraction truncated to microseconds."""
    match = _EXPIRY_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"expiry {value!r} does not match {EXPIRY_FORMAT}")

    parsed = datetime.strptime(match.group(1), EXPIRY_FORMAT)
    fraction = match.group(2)
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    return parsed


class Credential(BaseModel):
    """Access token issued by the carrier plus its expiry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    token: StrictStr = Field(min_length=1)
    expires_at: datetime = Field(alias="expiraEm")

    @field_validator("expires_at", mode="before")
    @classmethod
    def _parse_expiry(cls, value: Any) -> datetime:
        """Parse the naive local timestamp exactly as received."""
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                raise ValueError("expiry must not carry a timezone")
            return value
        if not isinstance(value, str):
            raise ValueError(f"expiry must be a string, got {type(value).__name__}")
        return parse_expiry(value)

    @classmethod
    def empty(cls) -> "Credential":
        """Placeholder held before the first authentication; always expired."""
        return cls.model_construct(token="", expires_at=datetime.min)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """A credential is valid while the current time is strictly before its expiry."""
        if not self.token:
            return False
        now = now or datetime.now()
        return now < self.expires_at


class TrackingRequest(BaseModel):
    """Body of ``POST /rastreamento``."""

    model_config = ConfigDict(extra="ignore")

    objetos: list[StrictStr] = Field(min_length=1)

    @field_validator("objetos")
    @classmethod
    def _strip_codes(cls, codes: list[str]) -> list[str]:
        cleaned = [code.strip() for code in codes]
        if any(not code for code in cleaned):
            raise ValueError("tracking codes must not be blank")
        return cleaned


# The relay forwards the carrier array as received; only its shape is checked.
_TRACKING_PAYLOAD = TypeAdapter(list[dict[str, Any]])


def parse_tracking_payload(data: Any) -> list[dict[str, Any]]:
    """Check a decoded carrier payload is a JSON array of objects."""
    return _TRACKING_PAYLOAD.validate_python(data, strict=True)


class _CarrierModel(BaseModel):
    """Read-only view over a carrier record, keyed by the carrier's camelCase names."""

    model_config = ConfigDict(alias_generator=to_camel, extra="ignore")


class Event(_CarrierModel):
    """A single tracking event (``evento``)."""

    # Status
    tipo_evento: Any = None
    status_evento: Any = None
    descricao_evento: Any = None

    # Location
    nome_unidade: Any = None
    municipio: Any = None
    uf: Any = None
    data_criacao: Any = None
    latitude: Any = None
    longitude: Any = None

    # Sender
    nome_remetente: Any = None
    cep_remetente: Any = None
    logradouro_remetente: Any = None
    complemento_remetente: Any = None
    numero_remetente: Any = None
    bairro_remetente: Any = None
    cidade_remetente: Any = None
    uf_remetente: Any = None
    pais_remetente: Any = None

    # Recipient
    nome_destinatario: Any = None
    cep_destinatario: Any = None
    logradouro_destinatario: Any = None
    complemento_destinatario: Any = None
    email_destinatario: Any = None
    numero_destinatario: Any = None
    bairro_destinatario: Any = None
    cidade_destinatario: Any = None
    uf_destinatario: Any = None
    pais_destinatario: Any = None

    # Delivery
    nome_recebedor: Any = None
    data_recebimento: Any = None
    documento: Any = None
    matricula: Any = None
    usuario: Any = None
    codigo_sro: Any = Field(default=None, alias="codigoSRO")


class TrackingObject(_CarrierModel):
    """Tracking record for one code (``objeto``), used for terminal summaries."""

    codigo: Any = None
    imagem_base64: Any = None
    mensagem: Any = None
    eventos: list[Event] = Field(default_factory=list)
    tipo: Any = None
    tipo_evento_imagem: Any = None
    data_criacao_imagem: Any = None
    status_evento_imagem: Any = None

    @field_validator("eventos", mode="before")
    @classmethod
    def _events_or_empty(cls, value: Any) -> Any:
        # Summaries skip events the carrier did not send as a list of objects
        if not isinstance(value, list):
            return []
        return [event for event in value if isinstance(event, dict)]

    @property
    def latest_event(self) -> Optional[Event]:
        """First event in the list; Correios sends them newest first."""
        if not self.eventos:
            return None
        return self.eventos[0]
