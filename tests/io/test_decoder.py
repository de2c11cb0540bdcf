"""Tests for `colwire.io.decoder.RecordBatchDecoder`."""

from __future__ import annotations

import io

import pyarrow as pa
import pytest

from colwire.core.append import extend
from colwire.core.batches import make_batch
from colwire.core.factory import new_array_builders
from colwire.core.types import INT16, INT64, UTF8, Field, Schema, dictionary
from colwire.io.channels import BytesChannel, ChannelByteSource
from colwire.io.decoder import RecordBatchDecoder
from colwire.io.encoder import encode_segment
from colwire.io.errors import DecodeError, IoConfigError

SCHEMA = pa.schema([("id", pa.int64()), ("name", pa.string())])


def _batch(ids: list[int]) -> pa.RecordBatch:
    return pa.record_batch(
        [pa.array(ids, pa.int64()), pa.array([f"n{i}" for i in ids], pa.string())],
        schema=SCHEMA,
    )


def _decoder(data: bytes, **kwargs) -> tuple[RecordBatchDecoder, BytesChannel]:
    ch = BytesChannel(data, chunk_size=7)
    return RecordBatchDecoder(ChannelByteSource(ch), **kwargs), ch


@pytest.mark.parametrize("codec", ["zstd", "lz4", "gzip"])
def test_compressed_stream_round_trip(codec: str) -> None:
    data = encode_segment([_batch([1, 2]), _batch([3])], SCHEMA, codec=codec)
    dec, ch = _decoder(data, schema=SCHEMA, compressed=True, codec=codec)

    batches = list(dec)

    assert [b.num_rows for b in batches] == [2, 1]
    assert pa.Table.from_batches(batches).column("id").to_pylist() == [1, 2, 3]
    assert dec.exhausted
    assert ch.close_count == 1
    assert dec.next_batch() is None


def test_schema_recovered_from_stream() -> None:
    data = encode_segment([_batch([1])], SCHEMA, compressed=False)
    dec, _ = _decoder(data)

    assert dec.schema == SCHEMA
    assert dec.next_batch().schema == SCHEMA


def test_expected_schema_relabels_columns() -> None:
    expected = Schema([Field("key", INT64), Field("label", UTF8)])
    data = encode_segment([_batch([5])], SCHEMA, compressed=False)
    dec, _ = _decoder(data, schema=expected)

    batch = dec.next_batch()

    assert batch.schema.names == ["key", "label"]
    assert batch.to_pylist() == [{"key": 5, "label": "n5"}]
    assert dec.schema == expected.to_arrow()


def test_schema_type_disagreement_is_a_decode_error() -> None:
    expected = pa.schema([("id", pa.int32()), ("name", pa.string())])
    data = encode_segment([_batch([5])], SCHEMA, compressed=False)
    dec, _ = _decoder(data, schema=expected)

    with pytest.raises(DecodeError, match="field 0"):
        dec.next_batch()
    with pytest.raises(DecodeError, match="already failed"):
        dec.next_batch()


def test_schema_field_count_disagreement() -> None:
    data = encode_segment([_batch([5])], SCHEMA, compressed=False)
    dec, _ = _decoder(data, schema=pa.schema([("id", pa.int64())]))
    with pytest.raises(DecodeError, match="2 fields"):
        dec.next_batch()


def test_non_strict_decoder_passes_stream_schema_through() -> None:
    expected = pa.schema([("id", pa.int32())])
    data = encode_segment([_batch([5])], SCHEMA, compressed=False)
    dec, _ = _decoder(data, schema=expected, strict_schema=False)

    assert dec.next_batch().schema == SCHEMA
    assert dec.schema == SCHEMA


def test_empty_segment_yields_no_batches() -> None:
    dec, ch = _decoder(b"", schema=SCHEMA, compressed=True)

    assert dec.next_batch() is None
    assert dec.next_batch() is None
    assert ch.close_count == 1


def test_stream_without_batches() -> None:
    data = encode_segment([], SCHEMA, compressed=True)
    dec, _ = _decoder(data, compressed=True)

    assert dec.next_batch() is None
    assert dec.schema == SCHEMA


def test_truncated_stream_is_a_decode_error() -> None:
    data = encode_segment([_batch(list(range(16)))], SCHEMA, compressed=False)
    # drop the end-of-stream marker (8 bytes) and part of the batch body
    dec, _ = _decoder(data[:-12])

    with pytest.raises(DecodeError):
        dec.next_batch()


def test_garbage_is_a_decode_error() -> None:
    dec, _ = _decoder(b"definitely not an arrow stream", compressed=True)
    with pytest.raises(DecodeError):
        dec.next_batch()


def test_close_is_idempotent_and_stops_decoding() -> None:
    data = encode_segment([_batch([1]), _batch([2])], SCHEMA, compressed=False)
    dec, ch = _decoder(data)
    assert dec.next_batch() is not None

    dec.close()
    dec.close()

    assert dec.closed
    assert ch.close_count == 1
    assert dec.next_batch() is None


def test_context_manager_closes_unopened_decoder() -> None:
    ch = BytesChannel(b"")
    with RecordBatchDecoder(ChannelByteSource(ch)):
        pass
    assert ch.close_count == 1


def test_plain_binary_stream_source() -> None:
    data = encode_segment([_batch([9])], SCHEMA, compressed=False)
    with RecordBatchDecoder(io.BufferedReader(io.BytesIO(data))) as dec:
        assert dec.next_batch().column(0).to_pylist() == [9]


def test_unsupported_codec() -> None:
    with pytest.raises(IoConfigError):
        RecordBatchDecoder(io.BytesIO(b""), compressed=True, codec="snappy")
    with pytest.raises(IoConfigError):
        RecordBatchDecoder(io.BytesIO(b""), buffer_size=0)


def test_compressed_segment_cut_at_any_offset_is_a_sticky_decode_error() -> None:
    data = encode_segment([_batch([i, i + 1]) for i in range(0, 10, 2)], SCHEMA)

    for cut in range(1, len(data)):
        dec, _ = _decoder(data[:cut], schema=SCHEMA, compressed=True)
        with pytest.raises(DecodeError):
            list(dec)
        with pytest.raises(DecodeError, match="already failed"):
            dec.next_batch()


class _FailingChannel(BytesChannel):
    """Channel that raises after serving `fail_after` bytes."""

    def __init__(self, data: bytes, fail_after: int) -> None:
        super().__init__(data, chunk_size=16)
        self.fail_after = fail_after
        self.served = 0

    def read(self, buffer: memoryview) -> int:
        if self.served >= self.fail_after:
            raise ConnectionResetError("peer went away")
        n = super().read(buffer)
        self.served += max(n, 0)
        return n


@pytest.mark.parametrize("compressed", [True, False])
def test_channel_fault_inside_the_stream_propagates_unchanged(compressed: bool) -> None:
    data = encode_segment(
        [_batch(list(range(i, i + 20))) for i in range(0, 100, 20)], SCHEMA, compressed=compressed
    )
    ch = _FailingChannel(data, fail_after=len(data) // 2)
    dec = RecordBatchDecoder(ChannelByteSource(ch), SCHEMA, compressed, buffer_size=16)

    with pytest.raises(ConnectionResetError, match="peer went away"):
        list(dec)

    dec.close()
    assert ch.close_count == 1


def test_dictionary_column_round_trip() -> None:
    schema = Schema([Field("tag", dictionary(INT16, UTF8)), Field("n", INT64)])
    source_tags = pa.DictionaryArray.from_arrays(
        pa.array([0, None, 1], pa.int16()), pa.array(["a", "b"], pa.string())
    )
    builders = new_array_builders(schema)
    extend(builders[0], source_tags, [0, 1, 2, 0], schema[0].type)
    extend(builders[1], pa.array([1, 2, 3, 4], pa.int64()), [0, 1, 2, 3], INT64)
    batch = make_batch(schema, builders)

    dec, _ = _decoder(encode_segment([batch], schema), schema=schema, compressed=True)
    (out,) = list(dec)

    assert out.schema == schema.to_arrow()
    assert out.column(0).to_pylist() == ["a", None, "b", "a"]
    assert out.column(0).is_null().to_pylist() == [False, True, False, False]
    assert out.column(1).to_pylist() == [1, 2, 3, 4]
