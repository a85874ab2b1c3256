"""
Потокобезопасное управление requests.Session.

Каждый поток получает собственную сессию (и свой пул соединений
HTTPAdapter), поэтому VkApi можно использовать из нескольких потоков
без блокировок.
"""

import threading
import weakref
from typing import Callable, Set

import requests


class ThreadSafeSessionManager:
    """
    Thread-local хранилище requests.Session.

    Сессии создаются лениво при первом обращении из потока и
    отслеживаются через weakref, чтобы close_all() закрыл их все.

    Example:
        >>> manager = ThreadSafeSessionManager(session_factory)
        >>> session = manager.get_session()
        >>> manager.close_all()
    """

    def __init__(self, session_factory: Callable[[], requests.Session]):
        self._session_factory = session_factory
        self._local = threading.local()
        self._all_sessions: Set[weakref.ref] = set()
        self._sessions_lock = threading.RLock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_session(self) -> requests.Session:
        """
        Сессия текущего потока.

        Raises:
            RuntimeError: Менеджер уже закрыт
        """
        if self._closed:
            raise RuntimeError("session manager is closed")

        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
            with self._sessions_lock:
                self._all_sessions.add(weakref.ref(session, self._discard))
        return session

    def _discard(self, ref: weakref.ref) -> None:
        with self._sessions_lock:
            self._all_sessions.discard(ref)

    def close_all(self) -> None:
        """Закрыть сессии всех потоков. Повторный вызов безопасен."""
        self._closed = True
        self._local.session = None

        with self._sessions_lock:
            refs = list(self._all_sessions)
            self._all_sessions.clear()

        for ref in refs:
            session = ref()
            if session is not None:
                session.close()

    def get_active_sessions_count(self) -> int:
        """Количество живых сессий во всех потоках."""
        with self._sessions_lock:
            return sum(1 for ref in self._all_sessions if ref() is not None)
