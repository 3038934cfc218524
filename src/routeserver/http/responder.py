"""
=============================================================================
HANDLER RETURN VALUES
=============================================================================

Handlers return whatever is most natural and into_response() turns it
into an HTTPResponse:

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │  handler returns     │  response                                    │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │  HTTPResponse        │  as is                                       │
    │  str                 │  200, text/plain                             │
    │  bytes               │  200, text/plain                             │
    │  pydantic BaseModel  │  200, application/json                       │
    │  dict / list         │  200, application/json                       │
    │  HandlerError        │  error_response(error)                       │
    │  anything else       │  TypeError (a programming error → 500)       │
    └──────────────────────┴──────────────────────────────────────────────┘

=============================================================================
"""

from typing import Union

from pydantic import BaseModel

from .errors import HandlerError, error_response
from .response import APPLICATION_JSON, HTTPResponse, ResponseBuilder, TEXT_PLAIN


Responder = Union[HTTPResponse, str, bytes, BaseModel, dict, list, HandlerError]


def into_response(value: Responder) -> HTTPResponse:
    if isinstance(value, HTTPResponse):
        return value

    if isinstance(value, HandlerError):
        return error_response(value)

    if isinstance(value, str):
        return ResponseBuilder().text(value).build()

    if isinstance(value, (bytes, bytearray)):
        return ResponseBuilder().content_type(TEXT_PLAIN).body(bytes(value)).build()

    if isinstance(value, BaseModel):
        return (ResponseBuilder()
            .content_type(APPLICATION_JSON)
            .body(value.model_dump_json())
            .build())

    if isinstance(value, (dict, list)):
        return ResponseBuilder().json(value).build()

    raise TypeError(f"handler returned unsupported type {type(value).__name__}")
