"""
Синхронный клиент VK API поверх requests.
"""

import atexit
import weakref
from typing import Any, Dict, Generator, Iterator, Optional, Type, TypeVar, Union

import requests
import urllib3
from requests.adapters import HTTPAdapter

from .config import Version, VkApiConfig
from .exceptions import LongPollRecoverableError, classify_requests_exception
from .longpoll import (
    DEFAULT_WAIT,
    Cursor,
    LongPollFatal,
    LongPollRecoverable,
    LongPollSession,
    LongPollUpdates,
    decode_longpoll_outcome,
)
from .negotiation import PreparedRequest
from .pipeline import Exchange, RequestPipeline
from .session_manager import ThreadSafeSessionManager
from .wrapper import ApiMethod

T = TypeVar("T")

CHUNK_SIZE = 64 * 1024

_TRANSPORT_ERRORS = (requests.exceptions.RequestException, urllib3.exceptions.HTTPError)


class Subscription(Iterator[Any]):
    """
    Ленивый поток событий long poll.

    Каждый next() выполняет не больше одного запроса к серверу.
    close() (или выход из with) останавливает подписку: новых тиков не будет.

    Example:
        >>> with api.subscribe(cursor) as events:
        ...     for event in events:
        ...         handle(event)
        ...         if should_stop(event):
        ...             break
        >>> saved = events.cursor  # можно продолжить позже с этого места
    """

    def __init__(self, session: LongPollSession, events: Generator[Any, None, None]):
        self._session = session
        self._events = events

    @property
    def cursor(self) -> Cursor:
        """Текущий курсор (после последнего обработанного тика)."""
        return self._session.cursor

    @property
    def terminated(self) -> bool:
        return self._session.terminated

    def __iter__(self) -> 'Subscription':
        return self

    def __next__(self) -> Any:
        return next(self._events)

    def close(self) -> None:
        """Остановить подписку."""
        self._session.terminate()
        self._events.close()

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class VkApi:
    """
    Клиент VK API.

    Features:
        - Вызов методов с согласованием формата (msgpack/json) и сжатия (zstd/gzip)
        - Long poll подписка как ленивый итератор событий
        - Типизированные методы (ApiMethod) и модели ответов (pydantic)
        - Загрузка файлов на upload сервера
        - Thread-safe: каждый поток получает собственную requests.Session

    Args:
        access_token: Токен (игнорируется, если передан config)
        config: VkApiConfig
        **kwargs: Параметры для VkApiConfig.create()

    Raises:
        ConfigurationError: Выбран недоступный кодек

    Example:
        >>> with VkApi("token") as api:
        ...     users = api.call("users.get", {"user_ids": List([1, 2])})
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        *,
        config: Optional[VkApiConfig] = None,
        **kwargs
    ):
        if config is None:
            config = VkApiConfig.create(access_token or "", **kwargs)
        elif access_token is not None:
            config = config.with_access_token(access_token)

        self._config = config

        self._logger = None
        if config.logging:
            from .logging import VkClientLogger
            self._logger = VkClientLogger(config=config.logging, name=f"vkclient.{config.domain}")

        self._pipeline = RequestPipeline(config, self._logger)
        self._session_manager = ThreadSafeSessionManager(session_factory=self._create_session)
        self._closed = False

        weak_self = weakref.ref(self)
        atexit.register(_atexit_close, weak_self)

    def _create_session(self) -> requests.Session:
        """Сессия с пулом соединений. Ретраев на уровне транспорта нет."""
        session = requests.Session()

        adapter = HTTPAdapter(
            pool_connections=self._config.pool.pool_connections,
            pool_maxsize=self._config.pool.pool_maxsize,
            max_retries=0
        )
        session.mount('http://', adapter)
        session.mount('https://', adapter)
        return session

    # ==================== Свойства ====================

    @property
    def config(self) -> VkApiConfig:
        return self._config

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    @property
    def closed(self) -> bool:
        return self._closed

    # ==================== Жизненный цикл ====================

    def close(self) -> None:
        """
        Закрыть сессии всех потоков и логгер. Повторный вызов безопасен.

        Активные подписки после close() больше не опрашивают сервер.
        """
        if self._closed:
            return
        self._closed = True
        self._session_manager.close_all()
        if self._logger is not None:
            self._logger.close()

    def __enter__(self) -> 'VkApi':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ==================== Транспорт ====================

    def _execute(self, request: PreparedRequest, exchange: Exchange, timeout) -> Any:
        """Отправить запрос и прогнать сырые чанки тела через декодер."""
        session = self._session_manager.get_session()
        try:
            response = session.request(
                method=request.method,
                url=request.url,
                headers=dict(request.headers),
                data=request.body if request.data else None,
                params=list(request.params) or None,
                timeout=timeout,
                verify=self._config.verify_ssl,
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            raise classify_requests_exception(e, request.url) from e

        try:
            exchange.status_code = response.status_code
            decoder = self._pipeline.decoder(response.status_code, response.headers)

            # Читаем тело как есть: распаковкой занимается decoder по Content-Encoding
            response.raw.decode_content = False
            for chunk in response.raw.stream(CHUNK_SIZE, decode_content=False):
                decoder.feed(chunk)
            return decoder.finish()
        except _TRANSPORT_ERRORS as e:
            raise classify_requests_exception(e, request.url) from e
        finally:
            response.close()

    # ==================== Методы API ====================

    def call(
        self,
        method: str,
        params: Any = None,
        *,
        response_model: Optional[Type[T]] = None,
        version: Union[str, Version, None] = None
    ) -> Any:
        """
        Вызвать метод API.

        Args:
            method: Имя метода ("users.get")
            params: dict, dataclass или pydantic модель параметров
            response_model: Тип для валидации значения response
            version: Версия API для этого вызова (по умолчанию из конфига)

        Returns:
            Значение response (провалидированное, если задан response_model)

        Raises:
            RequestSerializeError: Параметры не сериализуются (до запроса)
            TransportError: Сетевая ошибка
            ResponseDecodeError: Тело не распаковывается/не разбирается
            ApiBusinessError: VK вернул error

        Example:
            >>> api.call("users.get", {"user_ids": [1, 2], "fields": ["sex"]})
            [{'id': 1, 'first_name': 'Павел', ...}, ...]
        """
        request = self._pipeline.prepare_call(method, params, version)
        with self._pipeline.exchange(request, api_method=method) as exchange:
            payload = self._execute(request, exchange, self._config.timeout.as_tuple())
            return self._pipeline.resolve_call(payload, response_model)

    send_request = call

    def call_method(self, request: ApiMethod) -> Any:
        """
        Вызвать типизированный метод.

        Example:
            >>> users = api.call_method(UsersGet(user_ids=[1]))
        """
        cls = type(request)
        return self.call(
            cls.get_method_name(),
            request,
            response_model=cls.response_model,
            version=cls.get_version(),
        )

    send_request_with_wrapper = call_method

    # ==================== Long poll ====================

    def subscribe(
        self,
        cursor: Cursor,
        *,
        wait: int = DEFAULT_WAIT,
        params: Any = None,
        item_model: Optional[Type[T]] = None
    ) -> Subscription:
        """
        Подписаться на события long poll сервера.

        Recoverable ошибки (failed с новым ts) обрабатываются внутри:
        курсор заменяется, подписка продолжается. Fatal ошибка выбрасывается
        из итератора один раз, после чего подписка исчерпана.

        Args:
            cursor: Начальный курсор (server, key, ts)
            wait: Серверное время ожидания, добавляется к read таймауту
            params: Дополнительные параметры тика (mode, version, ...)
            item_model: Тип для валидации каждого события

        Example:
            >>> server = api.call("groups.getLongPollServer", {"group_id": 1})
            >>> for event in api.subscribe(Cursor.from_response(server)):
            ...     print(event["type"])
        """
        session = LongPollSession(cursor, wait, params)
        return Subscription(session, self._run_subscription(session, item_model))

    def _run_subscription(
        self,
        session: LongPollSession,
        item_model: Optional[Type[T]]
    ) -> Generator[Any, None, None]:
        try:
            while not session.terminated and not self._closed:
                for item in self._tick(session, item_model):
                    yield item
                    if session.terminated:
                        return
        finally:
            session.terminate()
            if self._logger:
                self._logger.debug("Long poll subscription closed", ts=session.cursor.ts, ticks=session.ticks)

    def _tick(self, session: LongPollSession, item_model: Optional[Type[T]]):
        request = self._pipeline.prepare_tick(session)
        timeout = self._config.timeout.as_tuple(extra_read=session.wait)
        with self._pipeline.exchange(request, ts=session.cursor.ts) as exchange:
            payload = self._execute(request, exchange, timeout)
        return self._pipeline.resolve_tick(session, payload, item_model)

    def subscribe_once(
        self,
        cursor: Cursor,
        *,
        wait: int = DEFAULT_WAIT,
        params: Any = None,
        item_model: Optional[Type[T]] = None
    ) -> LongPollUpdates:
        """
        Один запрос к long poll серверу.

        Returns:
            LongPollUpdates(ts, updates)

        Raises:
            LongPollRecoverableError: Нужно продолжить с error.ts
            LongPollFatalError: Нужно получить новый key/server
        """
        session = LongPollSession(cursor, wait, params)
        request = self._pipeline.prepare_tick(session)
        timeout = self._config.timeout.as_tuple(extra_read=wait)
        with self._pipeline.exchange(request, ts=cursor.ts) as exchange:
            payload = self._execute(request, exchange, timeout)

        outcome = decode_longpoll_outcome(payload, item_model)
        if isinstance(outcome, LongPollRecoverable):
            raise LongPollRecoverableError(outcome.failed, outcome.ts)
        if isinstance(outcome, LongPollFatal):
            raise outcome.to_exception()
        return outcome

    # ==================== Загрузка файлов ====================

    def upload(
        self,
        url: str,
        files: Dict[str, Any],
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Загрузить файлы на upload сервер.

        Ответ возвращается текстом как есть: его нужно передать в метод
        сохранения (photos.saveMessagesPhoto и т.п.).

        Args:
            url: upload_url из *.getUploadServer
            files: Поля multipart в формате requests ({"photo": ("a.jpg", fp, "image/jpeg")})
            data: Дополнительные поля формы

        Raises:
            TransportError: Сетевая ошибка
            DecompressionError / TextParseError: Тело не читается
        """
        session = self._session_manager.get_session()
        request = PreparedRequest(method="POST", url=url, headers=self._pipeline.upload_headers())

        with self._pipeline.exchange(request, upload=True) as exchange:
            try:
                response = session.post(
                    url,
                    files=files,
                    data=data,
                    headers=dict(request.headers),
                    timeout=self._config.timeout.as_tuple(),
                    verify=self._config.verify_ssl,
                    stream=True,
                )
            except requests.exceptions.RequestException as e:
                raise classify_requests_exception(e, url) from e

            try:
                exchange.status_code = response.status_code
                response.raw.decode_content = False
                body = b"".join(response.raw.stream(CHUNK_SIZE, decode_content=False))
            except _TRANSPORT_ERRORS as e:
                raise classify_requests_exception(e, url) from e
            finally:
                response.close()

            return self._pipeline.decode_upload(response.headers, body)


def _atexit_close(ref: 'weakref.ref[VkApi]') -> None:
    """Закрыть клиент при завершении программы, если он ещё жив."""
    client = ref()
    if client is not None:
        client.close()
