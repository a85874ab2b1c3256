"""
Типизированные описания методов API.

Наследник ApiMethod - это pydantic модель параметров метода, которая
знает имя метода, требуемую версию API и модель ответа:

    >>> class UsersGet(ApiMethod):
    ...     method_name: ClassVar[str] = "users.get"
    ...     response_model: ClassVar[Any] = List[User]
    ...
    ...     user_ids: List[int]
    ...     fields: Optional[List[str]] = None
    >>>
    >>> users = api.call_method(UsersGet(user_ids=[1, 2], fields=["sex"]))
"""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict

from .config import Version


class ApiMethod(BaseModel):
    """
    Базовый класс описания метода.

    Атрибуты класса:
        method_name: Имя метода ("users.get")
        version: Версия API, с которой работает метод (None = версия клиента)
        response_model: Тип значения response (None = без валидации)

    Поля модели - параметры метода; они разворачиваются по тем же
    правилам, что и обычный dict (None пропускается, списки через запятую).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    method_name: ClassVar[str] = ""
    version: ClassVar[Optional[Version]] = None
    response_model: ClassVar[Any] = None

    @classmethod
    def get_method_name(cls) -> str:
        if not cls.method_name:
            raise TypeError(f"{cls.__name__} must define method_name")
        return cls.method_name

    @classmethod
    def get_version(cls) -> Optional[Version]:
        return cls.version
