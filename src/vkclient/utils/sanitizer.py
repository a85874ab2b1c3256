"""
Маскирование чувствительных данных в логах.

Для VK API секретами являются access_token (в теле и в заголовке
Authorization), ключ long poll сессии (key) и секреты приложения
(client_secret, service token).
"""

import re
from typing import Any, Dict

MASK = "***REDACTED***"

# Точные имена (case-insensitive)
SENSITIVE_KEYS = {
    'access_token', 'token', 'service_token', 'group_token', 'user_token',
    'key', 'client_secret', 'secret', 'password',
    'authorization', 'cookie', 'sig',
}

# Суффиксы имён: *_token, *_secret, ...
SENSITIVE_SUFFIXES = ('_token', '_secret', '_password', '_key')

# Секреты внутри строк: заголовки, form-тела, query string
SENSITIVE_PATTERNS = [
    (re.compile(r'(Bearer\s+)([A-Za-z0-9\-._~+/]+=*)', re.IGNORECASE), r'\1' + MASK),
    (re.compile(r'((?:^|[?&\s])(?:access_token|key|client_secret|sig)=)([^&\s]+)', re.IGNORECASE),
     r'\1' + MASK),
]


def mask_sensitive_data(data: Any, mask: str = MASK) -> Any:
    """
    Рекурсивно маскирует чувствительные данные в словарях, списках, строках.

    Args:
        data: Данные для маскирования
        mask: Строка-заменитель

    Returns:
        Копия данных с замаскированными значениями

    Examples:
        >>> mask_sensitive_data({"access_token": "vk1.a.secret", "user_ids": "1"})
        {'access_token': '***REDACTED***', 'user_ids': '1'}

        >>> mask_sensitive_data("https://lp.vk.com/wh1?act=a_check&key=abc&ts=10")
        'https://lp.vk.com/wh1?act=a_check&key=***REDACTED***&ts=10'
    """
    if data is None or isinstance(data, (bool, int, float)):
        return data

    if isinstance(data, str):
        return _mask_string(data, mask)

    if isinstance(data, dict):
        return _mask_dict(data, mask)

    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask) for item in data)

    # Прочие объекты не трогаем
    return data


def _mask_dict(data: Dict[Any, Any], mask: str) -> Dict[Any, Any]:
    result = {}
    for key, value in data.items():
        if is_sensitive_key(str(key)):
            result[key] = mask
        else:
            result[key] = mask_sensitive_data(value, mask)
    return result


def _mask_string(text: str, mask: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        if mask != MASK:
            replacement = replacement.replace(MASK, mask)
        text = pattern.sub(replacement, text)
    return text


def is_sensitive_key(key: str) -> bool:
    """
    Является ли имя поля секретом.

    Examples:
        >>> is_sensitive_key("Authorization")
        True
        >>> is_sensitive_key("confirmation_token")
        True
        >>> is_sensitive_key("ts")
        False
    """
    key = key.lower()
    return key in SENSITIVE_KEYS or key.endswith(SENSITIVE_SUFFIXES)


def mask_headers(headers: Dict[str, str], mask: str = MASK) -> Dict[str, str]:
    """
    Маскирует чувствительные HTTP заголовки.

    Examples:
        >>> mask_headers({"Authorization": "Bearer vk1.a.secret", "Accept": "application/json"})
        {'Authorization': '***REDACTED***', 'Accept': 'application/json'}
    """
    return _mask_dict(dict(headers), mask)


def add_sensitive_keys(*keys: str) -> None:
    """
    Добавляет имена полей, которые нужно маскировать.

    Examples:
        >>> add_sensitive_keys('confirmation_code')
    """
    for key in keys:
        SENSITIVE_KEYS.add(key.lower())
