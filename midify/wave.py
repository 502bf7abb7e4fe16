"""PCM RIFF/WAVE files.

Layout (all integers little-endian):

  0x00  "RIFF"  file size (int32)  "WAVE"
  0x0C  "fmt "  16  format(1=PCM)  channels  sample rate  byte rate
                block align  bits per channel
        zero or more "LIST" chunks (skipped)
        "data"  size (int32)  frames...

Frames are kept as :class:`Sample` objects holding the raw bytes of the left
and right channel; mono sources duplicate their single channel.  Clips are
normalized to 16-bit stereo before rendering.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Union

from .byteconv import bytes_to_ascii, bytes_to_int, int_to_bytes, to_int16, trunc_div
from .errors import MalformedHeaderError, UnsupportedFeatureError
from .records import ByteStream, fixed, int32, read_record, schema, write_record

logger = logging.getLogger(__name__)

RIFF_MAGIC = b"RIFF"
WAVE_TAG = b"WAVE"
FORMAT_MAGIC = b"fmt "
LIST_MAGIC = b"LIST"
DATA_MAGIC = b"data"

MIN_WAVE_SIZE = 44  # header + format + data chunk head
FORMAT_CHUNK_SIZE = 16
PCM_FORMAT = 1
TARGET_SAMPLE_RATE = 44100
TARGET_CHANNELS = 2
TARGET_BITS = 16
TARGET_BLOCK_ALIGN = TARGET_CHANNELS * TARGET_BITS // 8
NORMALIZABLE_BITS = (8, 16, 24, 32)
MAX_AMPLITUDE = 0x7FFF

HEADER_LAYOUT = schema(fixed("prefix", 4), int32("file_size"), fixed("format", 4))
FORMAT_LAYOUT = schema(
    fixed("prefix", 4),
    fixed("size", 4),
    fixed("format", 2),
    fixed("channels", 2),
    fixed("sample_rate", 4),
    fixed("byte_rate", 4),
    fixed("block_align", 2),
    fixed("bits_per_channel", 2),
)
CHUNK_HEAD_LAYOUT = schema(fixed("prefix", 4), int32("size"))


def _le(data: bytes) -> int:
    return bytes_to_int(data, little_endian=True)


@dataclass
class WaveHeader:
    prefix: bytes = RIFF_MAGIC
    file_size: int = MIN_WAVE_SIZE
    format: bytes = WAVE_TAG

    @classmethod
    def read(cls, stream: ByteStream) -> "WaveHeader":
        start = stream.tell()
        values, _ = read_record(stream, HEADER_LAYOUT, little_endian=True)
        header = cls(**values)
        if header.prefix != RIFF_MAGIC:
            raise MalformedHeaderError("header does not start with 'RIFF'", start)
        if header.format != WAVE_TAG:
            raise MalformedHeaderError(
                f"RIFF file format is not 'WAVE' (got {bytes_to_ascii(header.format)!r})",
                start + 8,
            )
        return header

    def write(self, out: BinaryIO) -> int:
        return write_record(out, vars(self), HEADER_LAYOUT, little_endian=True)


@dataclass(frozen=True)
class FormatChunk:
    prefix: bytes
    size: bytes
    format: bytes
    channels: bytes
    sample_rate: bytes
    byte_rate: bytes
    block_align: bytes
    bits_per_channel: bytes

    @classmethod
    def build(
        cls,
        *,
        channels: int = TARGET_CHANNELS,
        sample_rate: int = TARGET_SAMPLE_RATE,
        bits_per_channel: int = TARGET_BITS,
    ) -> "FormatChunk":
        block_align = channels * bits_per_channel // 8
        return cls(
            prefix=FORMAT_MAGIC,
            size=int_to_bytes(FORMAT_CHUNK_SIZE, 4, little_endian=True),
            format=int_to_bytes(PCM_FORMAT, 2, little_endian=True),
            channels=int_to_bytes(channels, 2, little_endian=True),
            sample_rate=int_to_bytes(sample_rate, 4, little_endian=True),
            byte_rate=int_to_bytes(block_align * sample_rate, 4, little_endian=True),
            block_align=int_to_bytes(block_align, 2, little_endian=True),
            bits_per_channel=int_to_bytes(bits_per_channel, 2, little_endian=True),
        )

    @property
    def chunk_size(self) -> int:
        return _le(self.size)

    @property
    def format_tag(self) -> int:
        return _le(self.format)

    @property
    def channel_count(self) -> int:
        return _le(self.channels)

    @property
    def rate(self) -> int:
        return _le(self.sample_rate)

    @property
    def bytes_per_frame(self) -> int:
        return _le(self.block_align)

    @property
    def bits(self) -> int:
        return _le(self.bits_per_channel)

    @classmethod
    def read(cls, stream: ByteStream, *, sample_rate: int = TARGET_SAMPLE_RATE) -> "FormatChunk":
        start = stream.tell()
        values, _ = read_record(stream, FORMAT_LAYOUT)
        fmt = cls(**values)

        if fmt.prefix != FORMAT_MAGIC:
            raise MalformedHeaderError("format chunk does not start with 'fmt '", start)
        if fmt.chunk_size != FORMAT_CHUNK_SIZE:
            raise MalformedHeaderError(
                f"format chunk byte size is {fmt.chunk_size}, not {FORMAT_CHUNK_SIZE}; "
                "wave file might not be PCM",
                start + 4,
            )
        if fmt.format_tag != PCM_FORMAT:
            raise UnsupportedFeatureError(
                f"wave file is not PCM (format tag {fmt.format_tag})", start + 8
            )
        if fmt.channel_count not in (1, 2):
            raise UnsupportedFeatureError(
                f"wave file has {fmt.channel_count} channels (max 2 / stereo)", start + 10
            )
        if fmt.rate != sample_rate:
            raise UnsupportedFeatureError(
                f"sample rate is {fmt.rate}, not {sample_rate}", start + 12
            )
        if fmt.bits <= 0 or fmt.bits % 8 or fmt.bits > 32:
            raise UnsupportedFeatureError(
                f"{fmt.bits}-bit samples are not supported", start + 22
            )
        if fmt.bytes_per_frame != fmt.channel_count * fmt.bits // 8:
            raise MalformedHeaderError(
                f"block align {fmt.bytes_per_frame} does not match "
                f"{fmt.channel_count} x {fmt.bits}-bit channels",
                start + 20,
            )
        return fmt

    def write(self, out: BinaryIO) -> int:
        return write_record(out, vars(self), FORMAT_LAYOUT)


@dataclass
class Sample:
    """One frame: raw little-endian bytes of the left and right channel."""

    left: bytes
    right: bytes

    @classmethod
    def from_values(cls, left: int, right: int) -> "Sample":
        return cls(
            left=int_to_bytes(to_int16(left), 2, little_endian=True),
            right=int_to_bytes(to_int16(right), 2, little_endian=True),
        )

    @classmethod
    def silent(cls) -> "Sample":
        return cls(left=b"\x00\x00", right=b"\x00\x00")

    @property
    def left_value(self) -> int:
        return _le(self.left)

    @property
    def right_value(self) -> int:
        return _le(self.right)

    @property
    def is_silent(self) -> bool:
        return not any(self.left) and not any(self.right)

    def to_16bit(self, bits: int) -> None:
        self.left = _channel_to_16bit(self.left, bits)
        self.right = _channel_to_16bit(self.right, bits)


def _channel_to_16bit(raw: bytes, bits: int) -> bytes:
    # 8-bit data is unsigned; the x255 scale keeps the legacy output.
    value = _le(raw)
    if bits == 8:
        value *= 0xFF
    elif bits == 24:
        value = trunc_div(value, 0xFF)
    elif bits == 32:
        value = trunc_div(value, 0xFFFF)
    return int_to_bytes(to_int16(value), 2, little_endian=True)


@dataclass
class DataChunk:
    prefix: bytes = DATA_MAGIC
    size: int = 0
    samples: List[Sample] = field(default_factory=list)

    @classmethod
    def read(cls, stream: ByteStream, fmt: FormatChunk) -> "DataChunk":
        start = stream.tell()
        values, _ = read_record(stream, CHUNK_HEAD_LAYOUT, little_endian=True)
        chunk = cls(prefix=values["prefix"], size=values["size"])
        if chunk.prefix != DATA_MAGIC:
            raise MalformedHeaderError(
                f"data chunk does not start with 'data' (got {bytes_to_ascii(chunk.prefix)!r})",
                start,
            )
        if chunk.size < 0:
            raise MalformedHeaderError(
                f"data chunk declares a negative size ({chunk.size})", start + 4
            )

        frame = fmt.bytes_per_frame
        width = fmt.bits // 8
        stereo = fmt.channel_count == 2
        frames = chunk.size // frame
        raw = stream.read(frames * frame)
        stream.skip(min(chunk.size - frames * frame, stream.remaining()))

        for pos in range(0, len(raw), frame):
            left = raw[pos : pos + width]
            right = raw[pos + width : pos + 2 * width] if stereo else left
            chunk.samples.append(Sample(left=left, right=right))
        logger.debug("read %d frame(s) of %d-bit audio", frames, fmt.bits)
        return chunk

    def trim(self, bytes_per_frame: int = TARGET_BLOCK_ALIGN) -> int:
        """Drop silent frames from both ends; returns the number removed.

        ``size`` shrinks by ``bytes_per_frame`` for every frame removed.
        """

        before = len(self.samples)
        start = 0
        while start < len(self.samples) and self.samples[start].is_silent:
            start += 1
        end = len(self.samples)
        while end > start and self.samples[end - 1].is_silent:
            end -= 1
        self.samples = self.samples[start:end]
        removed = before - len(self.samples)
        self.size -= bytes_per_frame * removed
        return removed

    def write(self, out: BinaryIO, fmt: FormatChunk) -> int:
        written = write_record(
            out, {"prefix": self.prefix, "size": self.size}, CHUNK_HEAD_LAYOUT, little_endian=True
        )
        stereo = fmt.channel_count == 2
        for sample in self.samples:
            frame = sample.left + sample.right if stereo else sample.left
            out.write(frame)
            written += len(frame)
        return written


def skip_list_chunks(stream: ByteStream) -> int:
    """Skip consecutive LIST chunks; the first other chunk head is un-read."""

    skipped = 0
    while True:
        start = stream.tell()
        values, consumed = read_record(stream, CHUNK_HEAD_LAYOUT, little_endian=True)
        if values["prefix"] != LIST_MAGIC:
            stream.rewind(consumed)
            return skipped
        if values["size"] < 0:
            raise MalformedHeaderError(
                f"LIST chunk declares a negative size ({values['size']})", start + 4
            )
        stream.skip(values["size"])
        skipped += 1


@dataclass
class Wave:
    header: WaveHeader = field(default_factory=WaveHeader)
    format: FormatChunk = field(default_factory=FormatChunk.build)
    data: DataChunk = field(default_factory=DataChunk)

    @classmethod
    def blank(cls) -> "Wave":
        """An empty 16-bit / 44100 Hz / stereo wave."""

        return cls()

    @property
    def frame_count(self) -> int:
        return len(self.data.samples)

    @property
    def duration(self) -> float:
        return self.frame_count / self.format.rate

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        *,
        normalize: bool = True,
        trim: bool = True,
        sample_rate: int = TARGET_SAMPLE_RATE,
    ) -> "Wave":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"wave file does not exist: {path}")
        with path.open("rb") as handle:
            return cls.read(handle, normalize=normalize, trim=trim, sample_rate=sample_rate)

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "Wave":
        return cls.read(io.BytesIO(data), **kwargs)

    @classmethod
    def read(
        cls,
        handle: BinaryIO,
        *,
        normalize: bool = True,
        trim: bool = True,
        sample_rate: int = TARGET_SAMPLE_RATE,
    ) -> "Wave":
        stream = ByteStream(handle)
        if stream.length <= MIN_WAVE_SIZE:
            raise MalformedHeaderError(f"wave file too small ({stream.length} bytes)")

        header = WaveHeader.read(stream)
        fmt = FormatChunk.read(stream, sample_rate=sample_rate)
        skipped = skip_list_chunks(stream)
        if skipped:
            logger.debug("skipped %d LIST chunk(s)", skipped)
        data = DataChunk.read(stream, fmt)

        wave = cls(header=header, format=fmt, data=data)
        if normalize:
            wave.normalize_to_16bit()
        if trim:
            removed = wave.data.trim(wave.format.bytes_per_frame)
            wave.header.file_size = MIN_WAVE_SIZE + wave.data.size
            logger.debug("trimmed %d silent frame(s)", removed)
        return wave

    def normalize_to_16bit(self) -> None:
        """Convert every frame to 16-bit stereo and rewrite the sizes."""

        bits = self.format.bits
        if bits == TARGET_BITS and self.format.channel_count == TARGET_CHANNELS:
            logger.info("wave clip already 16-bit PCM, skipping transformation")
            return
        if bits not in NORMALIZABLE_BITS:
            raise UnsupportedFeatureError(f"{bits}-bit wave cannot be converted to 16-bit audio")

        logger.info("transforming %d frame(s) from %d-bit to 16-bit", self.frame_count, bits)
        for sample in self.data.samples:
            sample.to_16bit(bits)

        self.format = FormatChunk.build(sample_rate=self.format.rate)
        self.data.size = TARGET_BLOCK_ALIGN * self.frame_count
        self.header.file_size = MIN_WAVE_SIZE + self.data.size

    def scale_volume(self, amount: int) -> None:
        """Scale every 16-bit channel by ``amount / 64``, clamped to +/-32767."""

        if self.format.bits != TARGET_BITS:
            raise UnsupportedFeatureError("volume scaling needs 16-bit samples")
        modifier = amount / 64
        for sample in self.data.samples:
            left = max(-MAX_AMPLITUDE, min(MAX_AMPLITUDE, sample.left_value * modifier))
            right = max(-MAX_AMPLITUDE, min(MAX_AMPLITUDE, sample.right_value * modifier))
            sample.left = int_to_bytes(int(left), 2, little_endian=True)
            sample.right = int_to_bytes(int(right), 2, little_endian=True)

    def write(self, out: BinaryIO) -> int:
        written = self.header.write(out)
        written += self.format.write(out)
        written += self.data.write(out, self.format)
        return written

    def to_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.write(buf)
        return buf.getvalue()

    def save(self, path: Union[str, Path], *, overwrite: bool = False) -> Path:
        path = Path(path)
        if path.exists() and not overwrite:
            raise FileExistsError(f"refusing to overwrite existing file: {path}")
        with path.open("wb") as handle:
            written = self.write(handle)
        logger.info("wrote %s (%d bytes, %d frames)", path, written, self.frame_count)
        return path
