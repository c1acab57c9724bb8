# File: wpstudio/infrastructure/logging/formatters.py
# Purpose: Credential masking for log events and outbound request/response payloads
from typing import Any, Mapping


class SensitiveDataFilter:
    """
    Masks credentials before they reach a log sink.

    Keys are matched case-insensitively against two exact-name sets, so
    ``author`` or ``tokens_used`` stay readable. Password-like values keep
    their first 2 characters, token-like values their first and last 4.
    """

    PASSWORD_KEYS = frozenset({
        "password",
        "passwd",
        "pwd",
        "secret",
        "client_secret",
        "application_password",
    })

    TOKEN_KEYS = frozenset({
        "token",
        "access_token",
        "refresh_token",
        "id_token",
        "jwt",
        "authorization",
        "api_key",
        "apikey",
        "x-api-key",
        "private_key",
    })

    PASSWORD_MASK = "****"
    TOKEN_MASK = "*****"
    AUTH_SCHEMES = ("bearer", "basic")

    @classmethod
    def redact(cls, data: Any) -> Any:
        """
        Recursively redact sensitive data from dictionaries and lists.

        Args:
            data: Data to redact (dict, list, or primitive)

        Returns:
            Copy of the data with sensitive fields masked
        """
        if isinstance(data, Mapping):
            return {key: cls._redact_item(key, value) for key, value in data.items()}
        if isinstance(data, (list, tuple)):
            return [cls.redact(item) for item in data]
        return data

    @classmethod
    def _redact_item(cls, key: Any, value: Any) -> Any:
        if value is None or isinstance(value, (Mapping, list, tuple)):
            return cls.redact(value)

        name = str(key).lower()
        if name in cls.PASSWORD_KEYS:
            return cls.mask_password(value)
        if name in cls.TOKEN_KEYS:
            return cls.mask_token(value)
        return value

    @classmethod
    def mask_password(cls, value: Any) -> str:
        text = str(value)
        visible = text[:2] if len(text) > 2 else ""
        return visible + cls.PASSWORD_MASK

    @classmethod
    def mask_token(cls, value: Any) -> str:
        text = str(value)

        # Keep the auth scheme of header values readable ("Bearer abcd*****wxyz")
        scheme, separator, credential = text.partition(" ")
        if separator and credential and scheme.lower() in cls.AUTH_SCHEMES:
            return f"{scheme} {cls.mask_token(credential)}"

        if len(text) < 2:
            return "*" * 4
        if len(text) <= 8:
            return text[:1] + "*" * max(len(text) - 1, 4)
        return text[:4] + cls.TOKEN_MASK + text[-4:]


def redact_event_processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor applying SensitiveDataFilter to every event."""
    return SensitiveDataFilter.redact(event_dict)
