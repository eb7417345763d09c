"""Codec port: mapping between typed records and generic JSON trees.

A codec is supplied per dataset type at registration. Snapshot documents sent
to peers are JSON objects of identifier -> encoded record.
"""

import json
from collections.abc import Callable, Mapping
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from datasync.errors import DecodeError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@runtime_checkable
class Codec(Protocol):
    def encode(self, record: Any) -> Any: ...

    def decode(self, tree: Any) -> Any: ...


class ModelCodec(Generic[M]):
    """Codec for pydantic models; trees are JSON-compatible dumps."""

    def __init__(self, model: type[M]) -> None:
        self._model = model

    @property
    def model(self) -> type[M]:
        return self._model

    def encode(self, record: M) -> Any:
        if not isinstance(record, self._model):
            raise DecodeError(f"expected {self._model.__name__}, got {type(record).__name__}")
        return record.model_dump(mode="json")

    def decode(self, tree: Any) -> M:
        try:
            return self._model.model_validate(tree)
        except ValidationError as exc:
            raise DecodeError(f"invalid {self._model.__name__}: {exc.error_count()} error(s): {exc}") from exc

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ModelCodec) and other._model is self._model

    def __hash__(self) -> int:
        return hash((ModelCodec, self._model))

    def __repr__(self) -> str:
        return f"ModelCodec({self._model.__name__})"


class JsonCodec:
    """Identity codec for datasets whose records are plain JSON trees."""

    def encode(self, record: Any) -> Any:
        return record

    def decode(self, tree: Any) -> Any:
        if tree is None:
            raise DecodeError("document is empty")
        return tree


class FunctionCodec(Generic[T]):
    """Codec assembled from two plain functions.

    Any exception raised by ``decode_fn`` or ``encode_fn`` is reported as a
    DecodeError.
    """

    def __init__(self, encode_fn: Callable[[T], Any], decode_fn: Callable[[Any], T]) -> None:
        self._encode_fn = encode_fn
        self._decode_fn = decode_fn

    def encode(self, record: T) -> Any:
        try:
            return self._encode_fn(record)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"encode failed: {exc}") from exc

    def decode(self, tree: Any) -> T:
        try:
            return self._decode_fn(tree)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"decode failed: {exc}") from exc


def is_codec(candidate: Any) -> bool:
    return callable(getattr(candidate, "encode", None)) and callable(getattr(candidate, "decode", None))


def encode_snapshot(codec: Codec, records: Mapping[str, Any]) -> bytes:
    """Serialize identifier -> record into compact, key-sorted UTF-8 JSON.

    Raises:
        DecodeError: If a record cannot be encoded or the tree is not JSON.
    """
    tree = {identifier: codec.encode(record) for identifier, record in records.items()}
    try:
        text = json.dumps(tree, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"snapshot is not JSON serializable: {exc}") from exc
    return text.encode("utf-8")


def decode_snapshot(codec: Codec, payload: bytes) -> dict[str, Any]:
    """Parse a snapshot document produced by :func:`encode_snapshot`.

    Raises:
        DecodeError: If the payload is not a JSON object or any record fails to decode.
    """
    try:
        tree = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"snapshot payload is not valid JSON: {exc}") from exc
    if not isinstance(tree, dict):
        raise DecodeError(f"snapshot payload must be a JSON object, got {type(tree).__name__}")
    return {identifier: codec.decode(document) for identifier, document in tree.items()}
