"""Field extractor — pulls the routing key out of a message payload.

The routing key is selected with a JSONPath expression (``$.sensoridentifier``)
evaluated read-only with ``jsonpath-ng``.  Three outcomes are kept apart:

- a string key (possibly empty),
- ``None`` when the path matches nothing or matches JSON ``null``,
- an ``ExtractionError`` when the payload cannot be decoded or the match
  cannot serve as a key.

Inbound bytes are either the JSON document itself or, with
``PayloadFormat.MQTT``, a JSON-serialized MQTT message whose ``payload``
field carries the base64-encoded document.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from jsonpath_ng import parse as parse_jsonpath

from channelfork.models.messages import PayloadFormat

logger = logging.getLogger(__name__)


class ExtractionError(ValueError):
    """Raised when a routing key cannot be extracted from a payload."""


class PayloadDecodeError(ExtractionError):
    """Raised when the payload is not decodable JSON."""


class InvalidExpressionError(ExtractionError):
    """Raised when the routing expression itself does not parse."""


def decode_document(payload: bytes, payload_format: PayloadFormat = PayloadFormat.JSON) -> Any:
    """Decode inbound bytes into the JSON document the expression runs against."""
    document = _load_json(payload)
    if payload_format == PayloadFormat.JSON:
        return document

    # MQTT framing: {"payload": "<base64>", "qos": ..., "retained": ...}
    if not isinstance(document, dict) or "payload" not in document:
        raise PayloadDecodeError("MQTT message has no payload field")
    inner = document["payload"]
    if not isinstance(inner, str):
        raise PayloadDecodeError(
            f"MQTT payload must be base64 text, got {type(inner).__name__}"
        )
    try:
        raw = base64.b64decode(inner, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeError(f"MQTT payload is not valid base64: {exc}") from exc
    return _load_json(raw)


def encode_mqtt_message(document: bytes, *, qos: int = 1, retained: bool = False) -> bytes:
    """Wrap a raw payload in the MQTT JSON framing understood by ``decode_document``."""
    message = {
        "payload": base64.b64encode(document).decode("ascii"),
        "qos": qos,
        "retained": retained,
        "duplicate": False,
    }
    return json.dumps(message, separators=(",", ":")).encode("utf-8")


def _load_json(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(f"Payload is not UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PayloadDecodeError(f"Invalid JSON: {exc}") from exc


def _as_key(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ExtractionError(
        f"Routing key must be a scalar, got {type(value).__name__}"
    )


class FieldExtractor:
    """Evaluates a compiled JSONPath expression against payloads.

    Parameters
    ----------
    expression:
        JSONPath selecting the routing key.  Must be non-empty.
    payload_format:
        Framing of the inbound bytes.

    Raises
    ------
    InvalidExpressionError
        If *expression* is empty or does not parse.
    """

    def __init__(
        self,
        expression: str,
        payload_format: PayloadFormat = PayloadFormat.JSON,
    ) -> None:
        if not expression or not expression.strip():
            raise InvalidExpressionError("Routing expression must be non-empty")
        try:
            self._compiled = parse_jsonpath(expression)
        except Exception as exc:  # noqa: BLE001
            raise InvalidExpressionError(
                f"Invalid routing expression {expression!r}: {exc}"
            ) from exc
        self._expression = expression
        self._payload_format = payload_format

    def __repr__(self) -> str:
        return f"FieldExtractor({self._expression!r}, {self._payload_format.value})"

    @property
    def expression(self) -> str:
        return self._expression

    @property
    def payload_format(self) -> PayloadFormat:
        return self._payload_format

    def extract(self, payload: bytes) -> str | None:
        """Return the routing key in *payload*, or ``None`` if there is none."""
        document = decode_document(payload, self._payload_format)
        matches = self._compiled.find(document)
        if not matches:
            return None
        if len(matches) > 1:
            raise ExtractionError(
                f"Expression {self._expression!r} matched {len(matches)} values"
            )
        return _as_key(matches[0].value)
