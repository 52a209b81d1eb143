# tests/common/test_constants.py
"""
Тесты для модуля констант.
"""

import pytest

from src.common.constants import (
    LATEST_GLOBAL_SUFFIX,
    LATEST_KEY_PREFIX,
    RECORD_LINE_SEPARATOR,
    TOPIC_ROOT,
    TOPIC_SEGMENTS,
    MessageType,
    TypeMsg,
)


class TestTypeMsg:
    """Тесты для enum TypeMsg."""

    def test_type_msg_values(self) -> None:
        """Проверяет значения типов сообщений."""
        assert TypeMsg.DEBUG.value == "debug"
        assert TypeMsg.INFO.value == "info"
        assert TypeMsg.WARNING.value == "warning"
        assert TypeMsg.ERROR.value == "error"
        assert TypeMsg.CRITICAL.value == "critical"

    def test_type_msg_is_str_enum(self) -> None:
        """Проверяет, что TypeMsg является строковым enum."""
        assert isinstance(TypeMsg.DEBUG, str)
        assert TypeMsg.INFO == "info"


class TestMessageType:
    """Тесты для enum MessageType."""

    def test_location(self) -> None:
        assert MessageType.LOCATION == "location"

    @pytest.mark.parametrize("value", ["transition", "waypoint", "lwt", "status"])
    def test_known_types(self, value: str) -> None:
        assert MessageType(value).value == value


class TestKeyConstants:
    """Тесты констант ключей хранилищ."""

    def test_topic_layout(self) -> None:
        assert TOPIC_ROOT == "owntracks"
        assert TOPIC_SEGMENTS == 3

    def test_latest_keys(self) -> None:
        assert LATEST_KEY_PREFIX == "last"
        assert LATEST_GLOBAL_SUFFIX == "all"

    def test_record_line_separator(self) -> None:
        assert RECORD_LINE_SEPARATOR == " * "
