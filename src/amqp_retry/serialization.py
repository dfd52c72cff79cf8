"""EnvelopeCodec: JSON roundtrip between delivery bodies and Envelopes."""

from __future__ import annotations

import json

from pydantic import ValidationError

from .envelope import Envelope
from .exceptions import EnvelopeParseError, MessagingSerializationError


class EnvelopeCodec:
    """Encode/decode Envelope to/from UTF-8 JSON bytes.

    Decoding failures surface as EnvelopeParseError so that the dispatcher
    can tell a structurally invalid message from a processing failure.
    """

    def encode(self, envelope: Envelope) -> bytes:
        """Encode envelope to JSON bytes (wire keys, see Envelope)."""
        try:
            data = envelope.model_dump(mode="json", by_alias=True)
            return json.dumps(data).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise MessagingSerializationError(str(e)) from e

    def decode(self, raw: bytes) -> Envelope:
        """Decode JSON bytes to Envelope; raises EnvelopeParseError."""
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise EnvelopeParseError(str(e), body=raw) from e
        except RecursionError as e:
            raise EnvelopeParseError("JSON nested too deeply", body=raw) from e
        if not isinstance(data, dict):
            raise EnvelopeParseError(
                f"Expected a JSON object, got {type(data).__name__}", body=raw
            )
        try:
            return Envelope.model_validate(data)
        except (ValidationError, RecursionError) as e:
            raise EnvelopeParseError(str(e), body=raw) from e
