"""
A Base64 encoder and decoder that never builds the whole result in memory.

Both directions borrow the input through a memoryview and hand out the result one
byte at a time. Each transcoder owns a small staging buffer holding the output of
the chunk it is currently working on:

    encode: 3 input bytes  -> 4 characters
    decode: 4 characters   -> up to 3 bytes

Encoding always uses the standard alphabet (RFC 4648, section 4). Decoding accepts
the standard and the URL-safe characters, even mixed in the same input.

Typical use:

    encoder = Base64Encoder(b"foobar")
    while (unit := encoder.pull()) is not None:
        ...

    decoder = Base64Decoder(b"Zm9vYmFy")
    for unit in decoder:   # raises Base64DecodeError on malformed input
        ...
"""

from enum import Enum

STANDARD_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
URLSAFE_SUBSTITUTES = {ord("-"): 62, ord("_"): 63}
PADDING = b"="[0]

ENCODE_CHUNK_SIZE = 3
DECODE_CHUNK_SIZE = 4

_size = 64
_six_bit_mask = 0b0011_1111
_encode_shifts = (18, 12, 6, 0)

# Lookup variables used for conversion
_int_to_char_code: list[int] = []
_char_code_to_int: dict[int, int] = {}


def fill_lookup_variables():
    for char_code in STANDARD_ALPHABET:
        _char_code_to_int[char_code] = len(_int_to_char_code)
        _int_to_char_code.append(char_code)

    # decoding only, the encoder never produces these
    _char_code_to_int.update(URLSAFE_SUBSTITUTES)


fill_lookup_variables()
assert len(_int_to_char_code) == _size
assert len(_char_code_to_int) == _size + len(URLSAFE_SUBSTITUTES)


class DecodeStatus(Enum):
    OK = "ok"
    ERROR = "error"


class DecoderState(Enum):
    STREAMING = "streaming"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class DecodeErrorKind(Enum):
    INVALID_CHARACTER = "invalid character"
    MISPLACED_PADDING = "misplaced padding"
    TRUNCATED_CHUNK = "truncated chunk"


class Base64DecodeError(ValueError):
    def __init__(self, kind: DecodeErrorKind, chunk_index: int = 0, offset: int = 0):
        self.kind = kind
        self.chunk_index = chunk_index
        self.offset = offset
        super().__init__(f"{kind.value} in chunk {chunk_index} (offset {offset})")

    def at(self, chunk_index: int, offset: int) -> "Base64DecodeError":
        """Same error, located at the given chunk of the stream."""
        return Base64DecodeError(self.kind, chunk_index, offset)


class Symbol:
    """
    Classification of one input character: a six-bit value, padding or invalid.
    """

    __slots__ = ("value",)

    def __init__(self, value: int | None):
        self.value = value

    @property
    def is_value(self) -> bool:
        return self.value is not None and self.value >= 0

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Symbol) and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        if self is PADDING_SYMBOL:
            return "Symbol(PADDING)"
        if self is INVALID_SYMBOL:
            return "Symbol(INVALID)"
        return f"Symbol({self.value})"


PADDING_SYMBOL = Symbol(-1)
INVALID_SYMBOL = Symbol(None)
_value_symbols = [Symbol(value) for value in range(_size)]


def classify_symbol(char_code: int) -> Symbol:
    if char_code == PADDING:
        return PADDING_SYMBOL
    value = _char_code_to_int.get(char_code)
    if value is None:
        return INVALID_SYMBOL
    return _value_symbols[value]


def combine_bytes(chunk) -> int:
    """
    Pack up to 3 bytes into a 24 bit accumulator, left aligned. Missing bytes are 0.
    """
    combined = 0
    for ii, shift in enumerate((16, 8, 0)):
        if ii < len(chunk):
            combined |= chunk[ii] << shift
    return combined


def encode_chunk(chunk, out: bytearray) -> int:
    """
    Encode 1 to 3 bytes into the 4 byte `out` buffer. Returns the number of characters written.
    """
    combined = combine_bytes(chunk)
    for ii, shift in enumerate(_encode_shifts):
        out[ii] = _int_to_char_code[(combined >> shift) & _six_bit_mask]
    # groups past the input carry no data
    if len(chunk) <= 1:
        out[2] = PADDING
    if len(chunk) <= 2:
        out[3] = PADDING
    return DECODE_CHUNK_SIZE


def decode_chunk(chunk, out: bytearray) -> int:
    """
    Decode one chunk of 4 characters into the 3 byte `out` buffer.

    Returns the number of bytes written (1, 2 or 3). Raises Base64DecodeError, with
    chunk_index and offset left at 0, when the chunk is malformed. Nothing is written
    to `out` in that case.
    """
    if len(chunk) != DECODE_CHUNK_SIZE:
        raise Base64DecodeError(DecodeErrorKind.TRUNCATED_CHUNK)

    symbols = [classify_symbol(char_code) for char_code in chunk]
    if any(symbol is INVALID_SYMBOL for symbol in symbols):
        raise Base64DecodeError(DecodeErrorKind.INVALID_CHARACTER)

    # padding is only allowed as a suffix of length 1 or 2
    if symbols[0] is PADDING_SYMBOL or symbols[1] is PADDING_SYMBOL:
        raise Base64DecodeError(DecodeErrorKind.MISPLACED_PADDING)
    if symbols[2] is PADDING_SYMBOL and symbols[3] is not PADDING_SYMBOL:
        raise Base64DecodeError(DecodeErrorKind.MISPLACED_PADDING)

    v0, v1, v2, v3 = (symbol.value for symbol in symbols)
    out[0] = ((v0 << 2) | (v1 >> 4)) & 0xFF
    count = 1
    if symbols[2].is_value:
        out[1] = ((v1 << 4) | (v2 >> 2)) & 0xFF
        count = 2
    if symbols[3].is_value:
        out[2] = ((v2 << 6) | v3) & 0xFF
        count = 3
    return count


def encoded_length(num_bytes: int) -> int:
    return (num_bytes + 2) // 3 * 4


def decoded_length_bound(num_chars: int) -> int:
    # padding makes the real length shorter, never longer
    return num_chars // 4 * 3


class StagingBuffer:
    """
    Fixed capacity output queue. Filled once per chunk and drained one unit at a time.
    """

    __slots__ = ("data", "idx", "len")

    def __init__(self, capacity: int):
        self.data = bytearray(capacity)
        self.idx = 0
        self.len = 0

    def refill(self, count: int) -> None:
        if count > len(self.data):
            raise RuntimeError(f"Buggy! {count=} exceeds capacity {len(self.data)}")
        self.idx = 0
        self.len = count

    def pop(self) -> int | None:
        if self.idx >= self.len:
            return None
        self.idx += 1
        return self.data[self.idx - 1]

    def remaining(self) -> int:
        return self.len - self.idx


class _ChunkReader:
    """
    Cursor over a borrowed byte sequence, handing out memoryview slices of chunk_size.
    """

    def __init__(self, data, chunk_size: int):
        self.view = memoryview(data).cast("B")
        self.chunk_size = chunk_size
        self.pos = 0
        self.count = 0

    def next_chunk(self) -> memoryview | None:
        if self.pos >= len(self.view):
            return None
        chunk = self.view[self.pos : self.pos + self.chunk_size]
        self.pos += len(chunk)
        self.count += 1
        return chunk

    def remaining(self) -> int:
        return len(self.view) - self.pos


class Base64Encoder:
    """
    Pull based encoder. Not rewindable, construct a new instance to start over.
    """

    def __init__(self, data):
        self._input = _ChunkReader(data, ENCODE_CHUNK_SIZE)
        self._output = StagingBuffer(DECODE_CHUNK_SIZE)

    def pull(self) -> int | None:
        """
        Next encoded character as an int, or None once the input is exhausted.
        """
        unit = self._output.pop()
        if unit is not None:
            return unit
        chunk = self._input.next_chunk()
        if chunk is None:
            return None
        self._output.refill(encode_chunk(chunk, self._output.data))
        return self._output.pop()

    def __iter__(self) -> "Base64Encoder":
        return self

    def __next__(self) -> int:
        unit = self.pull()
        if unit is None:
            raise StopIteration
        return unit

    def __length_hint__(self) -> int:
        return self._output.remaining() + encoded_length(self._input.remaining())


class Base64Decoder:
    """
    Pull based decoder.

    The first malformed chunk raises Base64DecodeError out of pull() (and out of
    iteration). From then on the decoder is FAILED: no further chunks are read and
    pull() only returns None. Bytes from earlier chunks have already been handed
    out, so callers that need all-or-nothing results should discard them.

    status() can be asked at any time and reports ERROR once a chunk has failed.
    """

    def __init__(self, data):
        self._input = _ChunkReader(data, DECODE_CHUNK_SIZE)
        self._output = StagingBuffer(ENCODE_CHUNK_SIZE)
        self.state = DecoderState.STREAMING
        self.error: Base64DecodeError | None = None

    def status(self) -> DecodeStatus:
        if self.state is DecoderState.FAILED:
            return DecodeStatus.ERROR
        return DecodeStatus.OK

    def pull(self) -> int | None:
        unit = self._output.pop()
        if unit is not None:
            return unit
        if self.state is not DecoderState.STREAMING:
            return None

        offset = self._input.pos
        chunk = self._input.next_chunk()
        if chunk is None:
            self.state = DecoderState.EXHAUSTED
            return None
        try:
            count = decode_chunk(chunk, self._output.data)
        except Base64DecodeError as ex:
            self.state = DecoderState.FAILED
            self.error = ex.at(self._input.count - 1, offset)
            raise self.error from None
        self._output.refill(count)
        return self._output.pop()

    def __iter__(self) -> "Base64Decoder":
        return self

    def __next__(self) -> int:
        unit = self.pull()
        if unit is None:
            raise StopIteration
        return unit


def encode(data) -> bytes:
    return bytes(Base64Encoder(data))


def decode(data) -> bytes:
    """
    Decode all of `data`. Raises Base64DecodeError if any chunk is malformed.
    """
    return bytes(Base64Decoder(data))
