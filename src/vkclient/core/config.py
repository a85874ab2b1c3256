"""
Система конфигурации для VK API клиента.

Все конфиги immutable (frozen dataclasses) для потокобезопасности.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .capabilities import Capabilities
    from .logging import LoggingConfig

DEFAULT_DOMAIN = "api.vk.com"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ENCODING PROFILE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Compression(str, Enum):
    """Сжатие ответов."""
    NONE = "none"
    GZIP = "gzip"
    ZSTD = "zstd"


class Format(str, Enum):
    """Формат тела ответа."""
    NONE = "none"
    JSON = "json"
    MSGPACK = "msgpack"


_ACCEPT_ENCODING = {
    Compression.ZSTD: "zstd",
    Compression.GZIP: "gzip",
    Compression.NONE: "identity",
}

_ACCEPT = {
    Format.MSGPACK: "application/x-msgpack",
    Format.JSON: "application/json",
    Format.NONE: "text/*",
}


@dataclass(frozen=True)
class EncodingProfile:
    """
    Выбранные сжатие и формат. Оси независимы.

    Профиль описывает только то, что мы ПРОСИМ у сервера. Декодирование
    ответа всегда идёт по заголовкам, которые сервер вернул.

    Examples:
        >>> profile = EncodingProfile(Compression.GZIP, Format.JSON)
        >>> profile.accept_encoding
        'gzip'
        >>> profile.accept
        'application/json'
    """
    compression: Compression = Compression.NONE
    format: Format = Format.NONE

    def __post_init__(self):
        """Принимаем и строки ('gzip', 'json')."""
        object.__setattr__(self, 'compression', Compression(self.compression))
        object.__setattr__(self, 'format', Format(self.format))

    @property
    def accept_encoding(self) -> str:
        return _ACCEPT_ENCODING[self.compression]

    @property
    def accept(self) -> str:
        return _ACCEPT[self.format]

    def method_path(self, method: str) -> str:
        """
        Путь метода API. Для msgpack добавляется суффикс-подсказка серверу.

        Зависит только от сконфигурированного формата, не от ответа.

        Examples:
            >>> EncodingProfile(format=Format.MSGPACK).method_path("users.get")
            '/method/users.get.msgpack'
        """
        if self.format is Format.MSGPACK:
            return f"/method/{method}.msgpack"
        return f"/method/{method}"

    def headers(self) -> Dict[str, str]:
        """Заголовки согласования для исходящего запроса."""
        return {
            "Accept": self.accept,
            "Accept-Encoding": self.accept_encoding,
        }

    @classmethod
    def best(cls, capabilities: Optional['Capabilities'] = None) -> 'EncodingProfile':
        """Лучший профиль из доступных: zstd + msgpack, иначе gzip + json."""
        if capabilities is None:
            from .capabilities import detect_capabilities
            capabilities = detect_capabilities()
        return cls(capabilities.best_compression(), capabilities.best_format())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# API VERSION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class Version:
    """
    Версия VK API (major.minor).

    Examples:
        >>> str(Version(5, 131))
        '5.131'
        >>> Version.parse("5.199")
        Version(major=5, minor=199)
    """
    major: int = 5
    minor: int = 131

    def __post_init__(self):
        """Валидация."""
        if self.major < 0 or self.minor < 0:
            raise ValueError("version parts must be non-negative")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, value: Union[str, 'Version']) -> 'Version':
        """Разобрать строку вида '5.131'."""
        if isinstance(value, Version):
            return value
        major, sep, minor = str(value).partition(".")
        if not sep:
            raise ValueError(f"Invalid API version: {value!r}")
        return cls(int(major), int(minor))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIMEOUT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TimeoutConfig:
    """
    Конфигурация таймаутов.

    Для long poll к read таймауту добавляется wait, чтобы серверное
    ожидание не обрывалось клиентом.

    Args:
        connect: Таймаут подключения (сек)
        read: Таймаут чтения данных (сек)

    Examples:
        >>> TimeoutConfig(connect=5, read=30)
    """
    connect: float = 5
    read: float = 30

    def __post_init__(self):
        """Валидация."""
        if self.connect <= 0:
            raise ValueError("connect timeout must be positive")
        if self.read <= 0:
            raise ValueError("read timeout must be positive")

    def as_tuple(self, extra_read: float = 0) -> Tuple[float, float]:
        """Вернуть как (connect, read) для requests."""
        return (self.connect, self.read + extra_read)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CONNECTION POOL CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class ConnectionPoolConfig:
    """
    Конфигурация connection pool.

    Args:
        pool_connections: Количество connection pools для кеширования
        pool_maxsize: Максимум соединений в пуле

    Examples:
        >>> ConnectionPoolConfig(pool_maxsize=20)
    """
    pool_connections: int = 10
    pool_maxsize: int = 10

    def __post_init__(self):
        """Валидация."""
        if self.pool_connections <= 0:
            raise ValueError("pool_connections must be positive")
        if self.pool_maxsize <= 0:
            raise ValueError("pool_maxsize must be positive")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class VkApiConfig:
    """
    Главная конфигурация VkApi / AsyncVkApi.

    Immutable конфигурация для потокобезопасности.

    Args:
        access_token: Токен доступа (пользователя, сообщества или сервисный)
        version: Версия API, по умолчанию 5.131
        domain: Домен API, по умолчанию api.vk.com
        encoding: Профиль сжатия и формата (None = лучший доступный)
        timeout: Конфигурация таймаутов
        pool: Конфигурация connection pool
        verify_ssl: Проверять SSL сертификаты
        headers: Дополнительные заголовки для всех запросов
        logging: Конфигурация логирования (None = без логов)
        capabilities: Набор доступных кодеков (None = определить автоматически)

    Examples:
        >>> config = VkApiConfig(access_token="token")
        >>> config = VkApiConfig.create("token", compression="gzip", format="json")
        >>> config = config.with_version(Version(5, 199))
    """
    access_token: str = ""
    version: Version = field(default_factory=Version)
    domain: str = DEFAULT_DOMAIN
    encoding: Optional[EncodingProfile] = None
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    pool: ConnectionPoolConfig = field(default_factory=ConnectionPoolConfig)
    verify_ssl: bool = True
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    logging: Optional['LoggingConfig'] = None
    capabilities: Optional['Capabilities'] = None

    def __post_init__(self):
        """Нормализовать домен, версию и заморозить заголовки."""
        if isinstance(self.headers, dict):
            object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))

        if not isinstance(self.version, Version):
            object.__setattr__(self, 'version', Version.parse(self.version))

        # Домен без схемы и завершающих слешей
        domain = self.domain.strip()
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        domain = domain.rstrip("/")
        if not domain:
            raise ValueError("domain must not be empty")
        if domain != self.domain:
            object.__setattr__(self, 'domain', domain)

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    def resolve_capabilities(self) -> 'Capabilities':
        """Явно заданные capabilities или автоопределённые."""
        if self.capabilities is not None:
            return self.capabilities
        from .capabilities import detect_capabilities
        return detect_capabilities()

    def resolve_encoding(self) -> EncodingProfile:
        """
        Профиль, который будет использоваться клиентом.

        Raises:
            ConfigurationError: Выбран кодек, которого нет в capabilities
        """
        from .exceptions import ConfigurationError

        capabilities = self.resolve_capabilities()
        if self.encoding is None:
            return EncodingProfile.best(capabilities)

        if not capabilities.supports_compression(self.encoding.compression):
            raise ConfigurationError(
                f"Compression '{self.encoding.compression.value}' is not available "
                f"(install the matching codec package)"
            )
        if not capabilities.supports_format(self.encoding.format):
            raise ConfigurationError(
                f"Format '{self.encoding.format.value}' is not available "
                f"(install the matching codec package)"
            )
        return self.encoding

    @classmethod
    def create(
        cls,
        access_token: str = "",
        version: Union[str, Version, None] = None,
        domain: str = DEFAULT_DOMAIN,
        compression: Union[str, Compression, None] = None,
        format: Union[str, Format, None] = None,
        timeout: Union[int, float, Tuple[float, float], TimeoutConfig] = 30,
        verify_ssl: bool = True,
        headers: Optional[Dict[str, str]] = None,
        pool_connections: Optional[int] = None,
        pool_maxsize: Optional[int] = None,
        logging: Optional['LoggingConfig'] = None,
        **kwargs
    ) -> 'VkApiConfig':
        """
        Удобный конструктор конфигурации.

        Args:
            access_token: Токен доступа
            version: Версия API ('5.131' или Version)
            domain: Домен API
            compression: Сжатие ('zstd', 'gzip', 'none'); None = лучшее доступное
            format: Формат ('msgpack', 'json', 'none'); None = лучший доступный
            timeout: Таймаут (число, (connect, read) или TimeoutConfig)
            verify_ssl: Проверять SSL
            headers: Заголовки
            pool_connections: Количество connection pool connections
            pool_maxsize: Максимальный размер connection pool
            logging: Конфигурация логирования (None = отключить логирование)

        Returns:
            VkApiConfig instance

        Examples:
            >>> config = VkApiConfig.create("token", timeout=60)
            >>> config = VkApiConfig.create("token", compression="gzip", format="json")
        """
        # Timeout конфигурация
        if isinstance(timeout, TimeoutConfig):
            timeout_cfg = timeout
        elif isinstance(timeout, tuple):
            timeout_cfg = TimeoutConfig(connect=timeout[0], read=timeout[1])
        else:
            timeout_cfg = TimeoutConfig(connect=5, read=timeout)

        # Pool конфигурация
        pool_kwargs = {}
        if pool_connections is not None:
            pool_kwargs['pool_connections'] = pool_connections
        if pool_maxsize is not None:
            pool_kwargs['pool_maxsize'] = pool_maxsize
        pool_cfg = ConnectionPoolConfig(**pool_kwargs)

        # Профиль: если не задана ни одна ось - выберем лучший при создании клиента
        encoding = None
        if compression is not None or format is not None:
            capabilities = kwargs.get('capabilities')
            best = EncodingProfile.best(capabilities)
            encoding = EncodingProfile(
                compression=compression if compression is not None else best.compression,
                format=format if format is not None else best.format,
            )

        return cls(
            access_token=access_token,
            version=Version.parse(version) if version is not None else Version(),
            domain=domain,
            encoding=encoding,
            timeout=timeout_cfg,
            pool=pool_cfg,
            verify_ssl=verify_ssl,
            headers=headers or {},
            logging=logging,
            **kwargs
        )

    # Builder-style setters: каждый возвращает новый конфиг

    def with_access_token(self, access_token: str) -> 'VkApiConfig':
        """Новый конфиг с другим токеном."""
        return replace(self, access_token=access_token)

    def with_version(self, version: Union[str, Version]) -> 'VkApiConfig':
        """Новый конфиг с другой версией API. По умолчанию 5.131."""
        return replace(self, version=Version.parse(version))

    def with_domain(self, domain: str) -> 'VkApiConfig':
        """Новый конфиг с другим доменом API. По умолчанию api.vk.com."""
        return replace(self, domain=domain)

    def with_compression(self, compression: Union[str, Compression]) -> 'VkApiConfig':
        """Новый конфиг с другим сжатием (формат сохраняется)."""
        current = self.encoding or EncodingProfile.best(self.capabilities)
        return replace(self, encoding=EncodingProfile(compression, current.format))

    def with_format(self, fmt: Union[str, Format]) -> 'VkApiConfig':
        """Новый конфиг с другим форматом (сжатие сохраняется)."""
        current = self.encoding or EncodingProfile.best(self.capabilities)
        return replace(self, encoding=EncodingProfile(current.compression, fmt))

    def with_encoding(self, encoding: EncodingProfile) -> 'VkApiConfig':
        """Новый конфиг с другим профилем целиком."""
        return replace(self, encoding=encoding)

    def with_headers(self, headers: Dict[str, str]) -> 'VkApiConfig':
        """Новый конфиг с дополнительными заголовками."""
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)
