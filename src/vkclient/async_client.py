"""
Асинхронный клиент VK API на базе httpx.

Логика согласования, декодирования и long poll та же, что у VkApi
(общий RequestPipeline); отличается только транспорт.
"""

from typing import Any, AsyncGenerator, Dict, Optional, Type, TypeVar, Union

try:
    import httpx
except ImportError:
    raise ImportError(
        "httpx is required for AsyncVkApi. "
        "Install with: pip install vkclient[async]"
    )

from .core.config import Version, VkApiConfig
from .core.exceptions import LongPollRecoverableError, classify_httpx_exception
from .core.longpoll import (
    DEFAULT_WAIT,
    Cursor,
    LongPollFatal,
    LongPollRecoverable,
    LongPollSession,
    LongPollUpdates,
    decode_longpoll_outcome,
)
from .core.negotiation import PreparedRequest
from .core.pipeline import Exchange, RequestPipeline
from .core.wrapper import ApiMethod

T = TypeVar("T")


class AsyncSubscription:
    """
    Асинхронный поток событий long poll.

    Каждый __anext__ выполняет не больше одного запроса. aclose() (или
    выход из async with) останавливает подписку. aclose() можно вызвать
    из другой задачи, пока потребитель ждёт ответа: этот запрос доработает,
    его события отброшены, а ожидающий __anext__ завершится
    StopAsyncIteration. Чтобы прервать сам запрос, отмените задачу
    потребителя.

    Example:
        >>> async with api.subscribe(cursor) as events:
        ...     async for event in events:
        ...         await handle(event)
    """

    def __init__(self, session: LongPollSession, events: AsyncGenerator[Any, None]):
        self._session = session
        self._events = events

    @property
    def cursor(self) -> Cursor:
        return self._session.cursor

    @property
    def terminated(self) -> bool:
        return self._session.terminated

    def __aiter__(self) -> 'AsyncSubscription':
        return self

    async def __anext__(self) -> Any:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        """Остановить подписку."""
        self._session.terminate()
        # Генератор занят тиком в другой задаче: он сам выйдет после ответа
        if self._events.ag_running:
            return
        await self._events.aclose()

    async def __aenter__(self) -> 'AsyncSubscription':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class AsyncVkApi:
    """
    Асинхронный клиент VK API.

    Один httpx.AsyncClient (и его пул соединений) разделяется между всеми
    вызовами и подписками клиента.

    Args:
        access_token: Токен (игнорируется, если передан config)
        config: VkApiConfig
        transport: httpx транспорт (по умолчанию сетевой; в тестах MockTransport)
        **kwargs: Параметры для VkApiConfig.create()

    Example:
        >>> async with AsyncVkApi("token") as api:
        ...     users = await api.call("users.get", {"user_ids": [1]})
        ...     async for event in api.subscribe(cursor):
        ...         print(event)

        >>> # Без context manager
        >>> api = AsyncVkApi("token")
        >>> await api.call("utils.getServerTime")
        >>> await api.close()
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        *,
        config: Optional[VkApiConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        if config is None:
            config = VkApiConfig.create(access_token or "", **kwargs)
        elif access_token is not None:
            config = config.with_access_token(access_token)

        self._config = config

        self._logger = None
        if config.logging:
            from .core.logging import VkClientLogger
            self._logger = VkClientLogger(config=config.logging, name=f"vkclient.async.{config.domain}")

        self._pipeline = RequestPipeline(config, self._logger)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._closed = False

    def _get_client(self) -> httpx.AsyncClient:
        """Ленивая инициализация httpx.AsyncClient."""
        if self._closed:
            raise RuntimeError("AsyncVkApi is closed")
        if self._client is None:
            client_kwargs = {
                "verify": self._config.verify_ssl,
                "limits": httpx.Limits(
                    max_connections=self._config.pool.pool_maxsize,
                    max_keepalive_connections=self._config.pool.pool_connections,
                ),
            }

            # Добавляем transport только если он указан
            if self._transport is not None:
                client_kwargs["transport"] = self._transport

            self._client = httpx.AsyncClient(**client_kwargs)
        return self._client

    def _timeout(self, extra_read: float = 0) -> httpx.Timeout:
        timeout = self._config.timeout
        return httpx.Timeout(
            connect=timeout.connect,
            read=timeout.read + extra_read,
            write=timeout.read,
            pool=timeout.connect,
        )

    @property
    def config(self) -> VkApiConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "AsyncVkApi":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Закрыть httpx клиент и логгер. Повторный вызов безопасен."""
        if self._closed:
            return
        self._closed = True
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._logger is not None:
            self._logger.close()

    aclose = close

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # TRANSPORT
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def _execute(
        self,
        request: PreparedRequest,
        exchange: Exchange,
        timeout: httpx.Timeout
    ) -> Any:
        """Отправить запрос и прогнать сырые чанки тела через декодер."""
        client = self._get_client()
        try:
            async with client.stream(
                request.method,
                request.url,
                headers=dict(request.headers),
                content=request.body if request.data else None,
                params=list(request.params) or None,
                timeout=timeout,
            ) as response:
                exchange.status_code = response.status_code
                decoder = self._pipeline.decoder(response.status_code, response.headers)

                # aiter_raw: без автоматической распаковки httpx
                async for chunk in response.aiter_raw():
                    decoder.feed(chunk)
                return decoder.finish()
        except httpx.HTTPError as e:
            raise classify_httpx_exception(e, request.url) from e

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # API METHODS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def call(
        self,
        method: str,
        params: Any = None,
        *,
        response_model: Optional[Type[T]] = None,
        version: Union[str, Version, None] = None
    ) -> Any:
        """
        Вызвать метод API.

        Raises:
            RequestSerializeError: Параметры не сериализуются (до запроса)
            TransportError: Сетевая ошибка
            ResponseDecodeError: Тело не распаковывается/не разбирается
            ApiBusinessError: VK вернул error
        """
        request = self._pipeline.prepare_call(method, params, version)
        with self._pipeline.exchange(request, api_method=method) as exchange:
            payload = await self._execute(request, exchange, self._timeout())
            return self._pipeline.resolve_call(payload, response_model)

    send_request = call

    async def call_method(self, request: ApiMethod) -> Any:
        """Вызвать типизированный метод."""
        cls = type(request)
        return await self.call(
            cls.get_method_name(),
            request,
            response_model=cls.response_model,
            version=cls.get_version(),
        )

    send_request_with_wrapper = call_method

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # LONG POLL
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def subscribe(
        self,
        cursor: Cursor,
        *,
        wait: int = DEFAULT_WAIT,
        params: Any = None,
        item_model: Optional[Type[T]] = None
    ) -> AsyncSubscription:
        """
        Подписаться на события long poll сервера.

        Семантика как у VkApi.subscribe(): recoverable ошибки обрабатываются
        внутри, fatal выбрасывается один раз и завершает подписку.
        """
        session = LongPollSession(cursor, wait, params)
        return AsyncSubscription(session, self._run_subscription(session, item_model))

    async def _run_subscription(
        self,
        session: LongPollSession,
        item_model: Optional[Type[T]]
    ) -> AsyncGenerator[Any, None]:
        try:
            while not session.terminated and not self._closed:
                for item in await self._tick(session, item_model):
                    if session.terminated:
                        return
                    yield item
        finally:
            session.terminate()
            if self._logger:
                self._logger.debug("Long poll subscription closed", ts=session.cursor.ts, ticks=session.ticks)

    async def _tick(self, session: LongPollSession, item_model: Optional[Type[T]]):
        request = self._pipeline.prepare_tick(session)
        with self._pipeline.exchange(request, ts=session.cursor.ts) as exchange:
            payload = await self._execute(request, exchange, self._timeout(extra_read=session.wait))
        return self._pipeline.resolve_tick(session, payload, item_model)

    async def subscribe_once(
        self,
        cursor: Cursor,
        *,
        wait: int = DEFAULT_WAIT,
        params: Any = None,
        item_model: Optional[Type[T]] = None
    ) -> LongPollUpdates:
        """
        Один запрос к long poll серверу.

        Raises:
            LongPollRecoverableError: Нужно продолжить с error.ts
            LongPollFatalError: Нужно получить новый key/server
        """
        session = LongPollSession(cursor, wait, params)
        request = self._pipeline.prepare_tick(session)
        with self._pipeline.exchange(request, ts=cursor.ts) as exchange:
            payload = await self._execute(request, exchange, self._timeout(extra_read=wait))

        outcome = decode_longpoll_outcome(payload, item_model)
        if isinstance(outcome, LongPollRecoverable):
            raise LongPollRecoverableError(outcome.failed, outcome.ts)
        if isinstance(outcome, LongPollFatal):
            raise outcome.to_exception()
        return outcome

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # UPLOAD
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def upload(
        self,
        url: str,
        files: Dict[str, Any],
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Загрузить файлы на upload сервер, вернуть ответ текстом.

        Args:
            url: upload_url из *.getUploadServer
            files: Поля multipart в формате httpx
            data: Дополнительные поля формы
        """
        client = self._get_client()
        request = PreparedRequest(method="POST", url=url, headers=self._pipeline.upload_headers())

        with self._pipeline.exchange(request, upload=True) as exchange:
            try:
                async with client.stream(
                    "POST",
                    url,
                    files=files,
                    data=data,
                    headers=dict(request.headers),
                    timeout=self._timeout(),
                ) as response:
                    exchange.status_code = response.status_code
                    body = b"".join([chunk async for chunk in response.aiter_raw()])
                    headers = response.headers
            except httpx.HTTPError as e:
                raise classify_httpx_exception(e, url) from e

            return self._pipeline.decode_upload(headers, body)
