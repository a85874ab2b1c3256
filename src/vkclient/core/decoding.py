"""
Декодирование ответа: распаковка по Content-Encoding и разбор по Content-Type.

Обе стадии работают с потоком чанков (feed/finish), поэтому один и тот же
код используется и для requests (sync), и для httpx (async), и тело не
обязано целиком лежать в памяти до распаковки.

Важно: выбор декомпрессора и десериализатора идёт ТОЛЬКО по заголовкам,
которые вернул сервер, а не по тому, что мы просили в Accept/Accept-Encoding.
"""

import json
import logging
import zlib
from typing import Any, Iterable, Mapping, Optional

from .capabilities import Capabilities
from .config import Compression, Format
from .exceptions import (
    BadEncodingError,
    DecompressionError,
    JsonParseError,
    MsgpackParseError,
    ResponseDecodeError,
    TextParseError,
)

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_MSGPACK = "application/x-msgpack"


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Регистронезависимый поиск заголовка в любом Mapping."""
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                value = candidate
                break
    return value

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DECOMPRESSION STAGE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Passthrough:
    """Без распаковки (identity, отсутствующий или незнакомый заголовок)."""

    encoding = "identity"

    def decompress(self, chunk: bytes) -> bytes:
        return chunk

    def flush(self) -> bytes:
        return b""


class MultiMemberDecompressor:
    """
    Потоковая распаковка тела из нескольких gzip member / zstd frame подряд.

    Когда текущий декомпрессор дошёл до конца member, остаток чанка уходит
    в новый. Байты после member, которые не начинают следующий, считаются
    битыми данными. flush() проверяет, что последний member завершён.
    """

    encoding = "identity"
    _errors: tuple = ()

    def __init__(self):
        self._decompressor = self._new_decompressor()

    def _new_decompressor(self):
        raise NotImplementedError

    def decompress(self, chunk: bytes) -> bytes:
        out = []
        try:
            while chunk:
                if self._decompressor.eof:
                    self._decompressor = self._new_decompressor()
                out.append(self._decompressor.decompress(chunk))
                chunk = self._decompressor.unused_data if self._decompressor.eof else b""
        except self._errors as e:
            raise DecompressionError(self.encoding, str(e)) from e
        return b"".join(out)

    def flush(self) -> bytes:
        try:
            tail = self._decompressor.flush()
        except self._errors as e:
            raise DecompressionError(self.encoding, str(e)) from e
        if not self._decompressor.eof:
            raise DecompressionError(self.encoding, "truncated stream")
        return tail


class GzipDecompressor(MultiMemberDecompressor):
    """Потоковая распаковка gzip через zlib."""

    encoding = "gzip"
    _errors = (zlib.error,)

    def _new_decompressor(self):
        # 16 + MAX_WBITS: ожидаем gzip заголовок и трейлер
        return zlib.decompressobj(16 + zlib.MAX_WBITS)


class ZstdDecompressor(MultiMemberDecompressor):
    """Потоковая распаковка zstd через zstandard."""

    encoding = "zstd"

    def __init__(self):
        import zstandard

        self._zstandard = zstandard
        self._errors = (zstandard.ZstdError,)
        super().__init__()

    def _new_decompressor(self):
        return self._zstandard.ZstdDecompressor().decompressobj()


def select_decompressor(
    content_encoding: Optional[str],
    capabilities: Capabilities
):
    """
    Выбрать декомпрессор по Content-Encoding ответа.

    Никогда не падает из-за незнакомого или не запрошенного кодека:
    в этом случае тело проходит как есть.

    Args:
        content_encoding: Значение заголовка Content-Encoding (или None)
        capabilities: Доступные кодеки

    Returns:
        Объект с методами decompress(chunk) и flush()
    """
    encoding = (content_encoding or "").strip().lower()

    if encoding == "zstd" and capabilities.supports_compression(Compression.ZSTD):
        return ZstdDecompressor()
    if encoding == "gzip" and capabilities.supports_compression(Compression.GZIP):
        return GzipDecompressor()

    if encoding not in ("", "identity"):
        logger.debug("Unsupported Content-Encoding %r, passing body through", encoding)
    return Passthrough()

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DESERIALIZATION STAGE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class JsonDeserializer:
    """
    JSON десериализатор.

    У stdlib json нет инкрементального парсера, поэтому чанки копятся
    и разбираются в finish().
    """

    format = Format.JSON

    def __init__(self):
        self._buffer = bytearray()

    def feed(self, data: bytes) -> None:
        self._buffer += data

    def finish(self) -> Any:
        try:
            return json.loads(bytes(self._buffer))
        except ValueError as e:
            # JSONDecodeError и UnicodeDecodeError - оба ValueError
            raise JsonParseError(str(e)) from e


class MsgpackDeserializer:
    """
    MessagePack десериализатор на msgpack.Unpacker, кормится по мере
    поступления данных.
    """

    format = Format.MSGPACK

    def __init__(self):
        import msgpack

        self._msgpack = msgpack
        # strict_map_key=False: в событиях встречаются не-строковые ключи
        self._unpacker = msgpack.Unpacker(raw=False, strict_map_key=False)
        self._size = 0

    def feed(self, data: bytes) -> None:
        self._size += len(data)
        try:
            self._unpacker.feed(data)
        except self._msgpack.BufferFull as e:
            raise MsgpackParseError("body exceeds unpacker buffer") from e

    def finish(self) -> Any:
        try:
            value = self._unpacker.unpack()
        except self._msgpack.OutOfData as e:
            raise MsgpackParseError("unexpected end of data") from e
        except (ValueError, self._msgpack.UnpackException) as e:
            raise MsgpackParseError(str(e) or type(e).__name__) from e

        if self._unpacker.tell() != self._size:
            raise MsgpackParseError("trailing data after the first object")
        return value


def select_deserializer(
    content_type: Optional[str],
    capabilities: Capabilities
):
    """
    Выбрать десериализатор по Content-Type ответа.

    Args:
        content_type: Значение Content-Type (или None)
        capabilities: Доступные форматы

    Returns:
        Объект с методами feed(data) и finish()

    Raises:
        BadEncodingError: Незнакомый Content-Type или формат недоступен
    """
    value = (content_type or "").strip().lower()

    if value.startswith(CONTENT_TYPE_JSON) and capabilities.supports_format(Format.JSON):
        return JsonDeserializer()
    if value.startswith(CONTENT_TYPE_MSGPACK) and capabilities.supports_format(Format.MSGPACK):
        return MsgpackDeserializer()

    raise BadEncodingError(content_type)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RESPONSE DECODER
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ResponseDecoder:
    """
    Связка DecompressionStage -> DeserializationStage для одного ответа.

    Транспорт кормит decoder сырыми (нераспакованными) чанками тела:

        >>> decoder = ResponseDecoder(response.headers, capabilities, status_code=200)
        >>> for chunk in raw_chunks:
        ...     decoder.feed(chunk)
        >>> payload = decoder.finish()

    Все ошибки стадий получают status_code ответа.
    """

    def __init__(
        self,
        headers: Mapping[str, str],
        capabilities: Capabilities,
        status_code: Optional[int] = None
    ):
        self.status_code = status_code
        self.content_type = _header(headers, "Content-Type")
        self.content_encoding = _header(headers, "Content-Encoding")

        # Content-Type проверяем до чтения тела: BadEncoding без лишнего I/O
        try:
            self._deserializer = select_deserializer(self.content_type, capabilities)
        except BadEncodingError as e:
            raise BadEncodingError(e.content_type, status_code) from None
        self._decompressor = select_decompressor(self.content_encoding, capabilities)

    def feed(self, chunk: bytes) -> None:
        if not chunk:
            return
        try:
            self._deserializer.feed(self._decompressor.decompress(chunk))
        except ResponseDecodeError as e:
            e.status_code = self.status_code
            raise

    def finish(self) -> Any:
        try:
            self._deserializer.feed(self._decompressor.flush())
            return self._deserializer.finish()
        except ResponseDecodeError as e:
            e.status_code = self.status_code
            raise


def decode_body(
    headers: Mapping[str, str],
    chunks: Iterable[bytes],
    capabilities: Capabilities,
    status_code: Optional[int] = None
) -> Any:
    """Синхронно прогнать итератор сырых чанков через ResponseDecoder."""
    decoder = ResponseDecoder(headers, capabilities, status_code)
    for chunk in chunks:
        decoder.feed(chunk)
    return decoder.finish()


def decode_text(
    headers: Mapping[str, str],
    body: bytes,
    capabilities: Capabilities
) -> str:
    """
    Распаковать тело по Content-Encoding и вернуть как UTF-8 текст.

    Используется для ответов upload серверов, которые VK надо передать
    дальше в метод сохранения файла как есть.

    Raises:
        DecompressionError: Битые данные объявленного сжатия
        TextParseError: Тело не UTF-8
    """
    decompressor = select_decompressor(_header(headers, "Content-Encoding"), capabilities)
    raw = decompressor.decompress(body) + decompressor.flush()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TextParseError(str(e)) from e
