"""Domain types shared by every repository variant."""

from .envelope import Envelope, parse_envelope
from .errors import (
    NotFound,
    RecordConversionError,
    RemoteError,
    RepositoryError,
    StoreError,
    TransportUnavailable,
)
from .ports import RecordStore, RemoteEndpoint
from .record import Document, Record, RecordModel
from .result import Failure, Result, Success

__all__ = [
    "Document",
    "Envelope",
    "Failure",
    "NotFound",
    "Record",
    "RecordConversionError",
    "RecordModel",
    "RecordStore",
    "RemoteEndpoint",
    "RemoteError",
    "RepositoryError",
    "Result",
    "StoreError",
    "Success",
    "TransportUnavailable",
    "parse_envelope",
]
