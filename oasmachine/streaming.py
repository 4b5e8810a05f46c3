"""
Streams for request and response bodies.

Results always carry their body as a readable binary stream. Transport adapters
that receive a request body in chunks can hand the runner a
:class:`BytesStreamBuffer` instead of joining the chunks first.
"""

import io
from typing import Any, BinaryIO, Union


class BytesStreamBuffer(io.BytesIO):
    """
    A bytes buffer that is filled incrementally and then read.

    Example:
        ```python
        stream = BytesStreamBuffer()
        async for chunk in receive_body_chunks():
            stream.write(chunk)
        stream.close_writing()

        await runner(Request("POST", "/pets", headers, body=stream))
        ```
    """

    def __init__(self, initial: bytes = b""):
        super().__init__()
        self._writing_finished = False
        if initial:
            self.write(initial)

    def close_writing(self):
        """Signal that no more data will be written, and rewind for reading."""
        self._writing_finished = True
        self.seek(0)

    @property
    def writing_finished(self) -> bool:
        return self._writing_finished

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def is_readable_stream(value: Any) -> bool:
    """True for file-like objects with a ``read`` method."""
    return callable(getattr(value, "read", None)) and not isinstance(value, (bytes, str))


def bytes_to_stream(data: Union[bytes, bytearray]) -> BinaryIO:
    return io.BytesIO(bytes(data))


def string_to_stream(text: str, encoding: str = "utf-8") -> BinaryIO:
    return io.BytesIO(text.encode(encoding))
