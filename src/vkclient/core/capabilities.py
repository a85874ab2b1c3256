"""
Набор кодеков, доступных в текущем окружении.

json и gzip есть всегда (stdlib), msgpack и zstd зависят от установленных
пакетов. Клиент проверяет выбранный EncodingProfile против этого набора
при создании.
"""

from dataclasses import dataclass, field
from importlib.util import find_spec
from typing import FrozenSet, Optional

from .config import Compression, Format


@dataclass(frozen=True)
class Capabilities:
    """
    Доступные компрессии и форматы.

    Args:
        compressions: Доступные алгоритмы сжатия (без Compression.NONE)
        formats: Доступные форматы (без Format.NONE)

    Examples:
        >>> caps = Capabilities.detect()
        >>> Compression.GZIP in caps.compressions
        True
        >>> json_only = Capabilities(formats=frozenset({Format.JSON}))
    """
    compressions: FrozenSet[Compression] = field(
        default_factory=lambda: frozenset({Compression.GZIP})
    )
    formats: FrozenSet[Format] = field(
        default_factory=lambda: frozenset({Format.JSON})
    )

    def __post_init__(self):
        """Нормализовать в frozenset и выкинуть NONE (он доступен всегда)."""
        object.__setattr__(
            self, 'compressions',
            frozenset(Compression(c) for c in self.compressions) - {Compression.NONE}
        )
        object.__setattr__(
            self, 'formats',
            frozenset(Format(f) for f in self.formats) - {Format.NONE}
        )

    def supports_compression(self, compression: Compression) -> bool:
        return compression is Compression.NONE or compression in self.compressions

    def supports_format(self, fmt: Format) -> bool:
        return fmt is Format.NONE or fmt in self.formats

    def best_compression(self) -> Compression:
        """zstd > gzip > identity."""
        for candidate in (Compression.ZSTD, Compression.GZIP):
            if candidate in self.compressions:
                return candidate
        return Compression.NONE

    def best_format(self) -> Format:
        """msgpack > json > none."""
        for candidate in (Format.MSGPACK, Format.JSON):
            if candidate in self.formats:
                return candidate
        return Format.NONE

    @classmethod
    def detect(cls) -> 'Capabilities':
        """Определить доступные кодеки по установленным пакетам."""
        compressions = {Compression.GZIP}
        formats = {Format.JSON}

        if find_spec("zstandard") is not None:
            compressions.add(Compression.ZSTD)
        if find_spec("msgpack") is not None:
            formats.add(Format.MSGPACK)

        return cls(compressions=frozenset(compressions), formats=frozenset(formats))


_detected: Optional[Capabilities] = None


def detect_capabilities() -> Capabilities:
    """Закешированный Capabilities.detect()."""
    global _detected
    if _detected is None:
        _detected = Capabilities.detect()
    return _detected
