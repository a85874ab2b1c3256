"""
RequestPipeline: согласование -> транспорт -> распаковка -> разбор -> конверт.

Pipeline не делает I/O. Он готовит запросы, создаёт декодер под
полученные заголовки, разворачивает конверт и пишет события в лог.
Транспорт (requests в VkApi, httpx в AsyncVkApi) только передаёт байты.
Один и тот же pipeline обслуживает вызовы методов, тики long poll и
загрузку файлов.

Pipeline неизменяем после создания, поэтому его можно разделять между
потоками и задачами.
"""

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Type, TypeVar

from .capabilities import Capabilities
from .config import EncodingProfile, Version, VkApiConfig
from .decoding import ResponseDecoder, decode_text
from .envelope import resolve_envelope
from .exceptions import ApiBusinessError, LongPollFatalError, VkApiException
from .longpoll import LongPollSession, decode_longpoll_outcome, longpoll_profile
from .negotiation import PreparedRequest, build_call_request

T = TypeVar("T")


@dataclass
class Exchange:
    """Контекст одного обмена запрос-ответ для логов."""
    correlation_id: str
    request: PreparedRequest
    started_at: float
    status_code: Optional[int] = None

    @property
    def duration_ms(self) -> float:
        return round((time.monotonic() - self.started_at) * 1000, 2)


class RequestPipeline:
    """
    Общая sans-IO часть VkApi и AsyncVkApi.

    Args:
        config: Конфигурация клиента
        logger: VkClientLogger или None (без логов)

    Raises:
        ConfigurationError: В конфигурации выбран недоступный кодек

    Example:
        >>> pipeline = RequestPipeline(VkApiConfig.create("token"))
        >>> request = pipeline.prepare_call("users.get", {"user_ids": 1})
        >>> with pipeline.exchange(request) as exchange:
        ...     response = transport.send(request)
        ...     exchange.status_code = response.status_code
        ...     decoder = pipeline.decoder(response.status_code, response.headers)
        ...     for chunk in response.raw_chunks():
        ...         decoder.feed(chunk)
        ...     users = pipeline.resolve_call(decoder.finish())
    """

    def __init__(self, config: VkApiConfig, logger: Optional[Any] = None):
        self.config = config
        self.capabilities: Capabilities = config.resolve_capabilities()
        self.profile: EncodingProfile = config.resolve_encoding()
        self.server_profile: EncodingProfile = longpoll_profile(self.capabilities)
        self.logger = logger

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # REQUESTS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def prepare_call(
        self,
        method: str,
        params: Any = None,
        version: Optional[Version] = None
    ) -> PreparedRequest:
        """
        Запрос к методу API.

        Raises:
            RequestSerializeError: Параметры не сериализуются
        """
        return build_call_request(
            self.config.domain,
            method,
            params,
            profile=self.profile,
            access_token=self.config.access_token,
            version=Version.parse(version) if version is not None else self.config.version,
            extra_headers=self.config.headers,
        )

    def prepare_tick(self, session: LongPollSession) -> PreparedRequest:
        """Запрос следующего тика long poll для текущего курсора сессии."""
        return session.request(self.server_profile, self.config.headers)

    def upload_headers(self) -> Dict[str, str]:
        """Заголовки загрузки файла. Content-Type multipart выставит транспорт."""
        headers = dict(self.config.headers)
        headers.update(self.server_profile.headers())
        return headers

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # RESPONSES
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def decoder(self, status_code: int, headers: Mapping[str, str]) -> ResponseDecoder:
        """
        Декодер под заголовки полученного ответа.

        Raises:
            BadEncodingError: Content-Type не поддерживается
        """
        return ResponseDecoder(headers, self.capabilities, status_code)

    def decode_upload(self, headers: Mapping[str, str], body: bytes) -> str:
        """Тело ответа upload сервера как текст."""
        return decode_text(headers, body, self.capabilities)

    def resolve_call(self, payload: Any, response_model: Optional[Type[T]] = None) -> T:
        """
        Развернуть конверт ответа метода.

        Raises:
            ApiBusinessError: Ошибка бизнес-логики VK
            EnvelopeError: Неоднозначный конверт
            ResponseValidationError: Ответ не соответствует модели
        """
        return resolve_envelope(payload, response_model)

    def resolve_tick(
        self,
        session: LongPollSession,
        payload: Any,
        item_model: Optional[Type[T]] = None
    ) -> List[T]:
        """
        Классифицировать тело тика и продвинуть сессию.

        Returns:
            События тика (пусто для recoverable исхода)

        Raises:
            LongPollFatalError: Фатальный исход, сессия завершена
            EnvelopeError: Неизвестная форма ответа
        """
        outcome = decode_longpoll_outcome(payload, item_model)
        previous_ts = session.cursor.ts

        try:
            items = session.advance(outcome)
        except LongPollFatalError as e:
            if self.logger:
                self.logger.warning(
                    "Long poll subscription terminated",
                    failed=e.failed,
                    min_version=e.min_version,
                    max_version=e.max_version,
                    ticks=session.ticks,
                )
            raise

        if self.logger:
            self.logger.debug(
                "Long poll cursor replaced",
                old_ts=previous_ts,
                ts=session.cursor.ts,
                failed=getattr(outcome, "failed", None),
                updates=len(items),
            )
        return items

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # LOGGING
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    @contextmanager
    def exchange(self, request: PreparedRequest, **fields: Any) -> Iterator[Exchange]:
        """
        Обернуть один обмен: correlation id, started/completed/failed в лог.

        Внутри блока не должно быть yield генератора подписки: correlation
        id привязан к текущему контексту только на время обмена.
        """
        exchange = Exchange(
            correlation_id=str(uuid.uuid4()),
            request=request,
            started_at=time.monotonic(),
        )

        if not self.logger:
            yield exchange
            return

        from .logging.filters import reset_correlation_id, set_correlation_id

        token = set_correlation_id(exchange.correlation_id)
        try:
            self.logger.info(
                "Request started",
                method=request.method,
                url=request.url,
                **fields
            )
            try:
                yield exchange
            except ApiBusinessError as e:
                self.logger.warning(
                    "Request completed with API error",
                    url=request.url,
                    status_code=exchange.status_code,
                    code=e.code,
                    error=e.error_msg,
                    duration_ms=exchange.duration_ms,
                    **fields
                )
                raise
            except VkApiException as e:
                self.logger.error(
                    "Request failed",
                    method=request.method,
                    url=request.url,
                    status_code=exchange.status_code,
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_ms=exchange.duration_ms,
                    **fields
                )
                raise
            self.logger.info(
                "Request completed",
                method=request.method,
                url=request.url,
                status_code=exchange.status_code,
                duration_ms=exchange.duration_ms,
                **fields
            )
        finally:
            reset_correlation_id(token)
