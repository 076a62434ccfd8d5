"""Chunked input readers feeding the token sources.

Inputs are read lazily in ``chunk_size`` pieces so that large dumps are never
held in memory as a whole. Text inputs are passed through unchanged; binary
inputs are decoded incrementally.
"""

import codecs
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, TextIO, Union

InputType = Union[str, bytes, bytearray, Path, BinaryIO, TextIO]


def iter_raw_chunks(input_data: InputType, chunk_size: int) -> Iterator[Union[str, bytes]]:
    """Yield the input in chunks without decoding.

    Strings are treated as document content, :class:`~pathlib.Path` objects
    as files to open, and anything with a ``read`` method as a file object.

    Raises:
        TypeError: If the input type is not supported
        OSError: If a path cannot be opened or read
    """
    if isinstance(input_data, str):
        for start in range(0, len(input_data), chunk_size):
            yield input_data[start:start + chunk_size]
    elif isinstance(input_data, (bytes, bytearray)):
        data = bytes(input_data)
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
    elif isinstance(input_data, Path):
        with input_data.open("rb") as file:
            yield from _iter_file_chunks(file, chunk_size)
    elif hasattr(input_data, "read"):
        yield from _iter_file_chunks(input_data, chunk_size)
    else:
        raise TypeError(f"Unsupported input type: {type(input_data).__name__}")


def _iter_file_chunks(
    file: Union[BinaryIO, TextIO], chunk_size: int
) -> Iterator[Union[str, bytes]]:
    while True:
        chunk = file.read(chunk_size)
        if not chunk:
            return
        yield chunk


class ChunkDecoder:
    """Incremental decoder for binary chunks.

    A multi-byte sequence split across two chunks is held back until the next
    chunk arrives. Undecodable bytes raise :class:`UnicodeDecodeError`.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._decoder: Optional[codecs.IncrementalDecoder] = None
        self._first = True

    def decode(self, chunk: Union[str, bytes], final: bool = False) -> str:
        """Decode one chunk; text chunks are returned unchanged."""
        if isinstance(chunk, str):
            return chunk
        if self._decoder is None:
            self._decoder = codecs.getincrementaldecoder(self.encoding)(errors="strict")
        text = self._decoder.decode(chunk, final=final)
        if self._first and text:
            self._first = False
            if text.startswith("\ufeff"):
                text = text[1:]
        return text

    def finish(self) -> str:
        """Flush the decoder at end of input."""
        if self._decoder is None:
            return ""
        return self._decoder.decode(b"", final=True)


def iter_text_chunks(
    input_data: InputType,
    encoding: str = "utf-8",
    chunk_size: int = 64 * 1024
) -> Iterator[str]:
    """Yield the input as decoded text chunks.

    Raises:
        UnicodeDecodeError: If binary input is not valid in ``encoding``
    """
    decoder = ChunkDecoder(encoding)
    for chunk in iter_raw_chunks(input_data, chunk_size):
        text = decoder.decode(chunk)
        if text:
            yield text
    tail = decoder.finish()
    if tail:
        yield tail
