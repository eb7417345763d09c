"""Unit tests for ChunkEncoder."""

import pytest

from datasync.errors import TransportError
from datasync.models.chunk import Chunk
from datasync.services.encoder import ALL_PEERS, ChunkEncoder


class FakeTransport:
    def __init__(self, fail_at: int | None = None) -> None:
        self.broadcasts: list[Chunk] = []
        self.sends: list[tuple[str, Chunk]] = []
        self._fail_at = fail_at

    def peers(self) -> list[str]:
        return ["peer-1"]

    def is_connected(self, peer: str) -> bool:
        return peer == "peer-1"

    def send(self, peer: str, chunk: Chunk) -> None:
        self._check(chunk)
        self.sends.append((peer, chunk))

    def broadcast(self, chunk: Chunk) -> None:
        self._check(chunk)
        self.broadcasts.append(chunk)

    def _check(self, chunk: Chunk) -> None:
        if self._fail_at is not None and chunk.index == self._fail_at:
            raise TransportError("wire is down")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


class TestSplit:
    def test_partitions_payload(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=10)
        payload = bytes(range(35))

        chunks = encoder.split("widget", payload)

        assert [len(chunk.payload) for chunk in chunks] == [10, 10, 10, 5]
        assert [chunk.index for chunk in chunks] == [0, 1, 2, 3]
        assert {chunk.total_count for chunk in chunks} == {4}
        assert len({chunk.session_id for chunk in chunks}) == 1
        assert b"".join(chunk.payload for chunk in chunks) == payload

    def test_exact_multiple_has_no_trailing_empty_chunk(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=10)

        chunks = encoder.split("widget", b"x" * 20)

        assert [len(chunk.payload) for chunk in chunks] == [10, 10]

    def test_small_payload_is_single_chunk(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=10)

        [chunk] = encoder.split("widget", b"tiny")

        assert chunk.is_single
        assert chunk.index == 0
        assert chunk.payload == b"tiny"

    def test_empty_payload_is_single_empty_chunk(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=10)

        [chunk] = encoder.split("widget", b"")

        assert chunk.total_count == 1
        assert chunk.payload == b""

    def test_every_split_uses_a_fresh_session(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=10)

        first = encoder.split("widget", b"abc")
        second = encoder.split("widget", b"abc")

        assert first[0].session_id != second[0].session_id

    def test_rejects_non_positive_size(self, transport: FakeTransport) -> None:
        with pytest.raises(ValueError):
            ChunkEncoder(transport, max_chunk_size=0)


class TestSend:
    def test_broadcasts_in_index_order(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=4)

        chunks = encoder.send("widget", b"0123456789")

        assert transport.broadcasts == chunks
        assert [chunk.index for chunk in transport.broadcasts] == [0, 1, 2]
        assert transport.sends == []

    def test_sends_to_single_peer(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=4)

        encoder.send("widget", b"012345", destination="peer-1")

        assert [peer for peer, _ in transport.sends] == ["peer-1", "peer-1"]
        assert transport.broadcasts == []

    def test_default_destination_is_all_peers(self, transport: FakeTransport) -> None:
        encoder = ChunkEncoder(transport, max_chunk_size=4)

        encoder.send("widget", b"abc", ALL_PEERS)

        assert len(transport.broadcasts) == 1

    def test_transport_error_stops_the_session(self) -> None:
        transport = FakeTransport(fail_at=1)
        encoder = ChunkEncoder(transport, max_chunk_size=2)

        with pytest.raises(TransportError):
            encoder.send("widget", b"abcdef")

        assert [chunk.index for chunk in transport.broadcasts] == [0]
