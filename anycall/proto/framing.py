"""COBS framing with an optional CRC for call and reply frames.

A frame on the wire is ``0x00 cobs(payload + crc) 0x00``. COBS removes
every zero byte from the body so zero can delimit frames.
"""

from .crc import CrcSize, crc_funcs

# Longest run of non-zero bytes one COBS code byte can describe
MAX_RUN = 254


class FrameError(RuntimeError):
    """Base exception for framing errors."""


class FrameEncodeError(FrameError):
    """Raised when frame encoding fails."""


class FrameDecodeError(FrameError):
    """Raised when frame decoding fails."""


class CRCCheckFailure(FrameError):
    """Raised when CRC validation fails."""


def encode(data: bytes) -> bytes:
    """COBS-encode ``data``; the result contains no zero byte.

    Each zero-separated run becomes a code byte (run length + 1) followed by
    the run. Runs longer than 254 bytes are split with code 0xFF, which
    implies no zero.
    """
    output = bytearray()
    for run in data.split(b"\x00"):
        while len(run) >= MAX_RUN:
            output.append(MAX_RUN + 1)
            output += run[:MAX_RUN]
            run = run[MAX_RUN:]
        output.append(len(run) + 1)
        output += run
    return bytes(output)


def decode(data: bytes) -> bytes:
    """Invert encode()."""
    output = bytearray()
    pos = 0
    while pos < len(data):
        code = data[pos]
        if code == 0:
            raise FrameDecodeError(f"Zero byte inside COBS data at offset {pos}")
        end = pos + code
        if end > len(data):
            raise FrameDecodeError(f"COBS block at offset {pos} runs past the data")
        output += data[pos + 1 : end]
        pos = end
        # A short block ends at a zero byte, except at the very end
        if code <= MAX_RUN and pos < len(data):
            output.append(0)
    return bytes(output)


def append_crc(data: bytes, crc_size: CrcSize = CrcSize.CRC8) -> bytes:
    """Append the little-endian CRC of ``data``."""
    if crc_size == CrcSize.NO_CRC:
        return data
    return data + crc_funcs[crc_size](data).to_bytes(crc_size.value, byteorder="little")


def check_crc(data: bytes, crc_size: CrcSize = CrcSize.CRC8) -> bytes:
    """Verify and strip the trailing CRC."""
    if crc_size == CrcSize.NO_CRC:
        return data
    if len(data) <= crc_size.value:
        raise CRCCheckFailure(f"{len(data)} byte frame is too short to carry a {crc_size.name}")

    body, trailer = data[: -crc_size.value], data[-crc_size.value :]
    if crc_funcs[crc_size](body) != int.from_bytes(trailer, byteorder="little"):
        raise CRCCheckFailure(f"{crc_size.name} mismatch")
    return body


class Framer:
    """Wraps payloads into frames and splits a received byte stream back into payloads."""

    def __init__(self, crc: CrcSize = CrcSize.CRC8) -> None:
        self._crc = crc
        self._pending = bytearray()

    def encode_frame(self, payload: bytes) -> bytes:
        """Frame one payload, delimiters included."""
        if not payload:
            raise FrameEncodeError("Cannot frame an empty payload")
        return b"\x00" + encode(append_crc(payload, self._crc)) + b"\x00"

    def append_buffer(self, data: bytes) -> None:
        """Queue received bytes for decode_frame()."""
        self._pending += data

    def decode_frame(self) -> bytes | None:
        """Pop the next complete payload, or None until a delimiter arrives."""
        while True:
            end = self._pending.find(0)
            if end < 0:
                return None
            body = bytes(self._pending[:end])
            del self._pending[: end + 1]
            # Back-to-back delimiters leave empty bodies
            if body:
                return check_crc(decode(body), self._crc)
