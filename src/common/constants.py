# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class MessageType(str, Enum):
    """Типы сообщений протокола OwnTracks (поле _type)."""
    LOCATION = "location"
    TRANSITION = "transition"
    WAYPOINT = "waypoint"
    WAYPOINTS = "waypoints"
    CARD = "card"
    LWT = "lwt"
    STATUS = "status"
    CMD = "cmd"


# =============================================================================
# КЛЮЧИ ХРАНИЛИЩ
# =============================================================================

# Первый сегмент topic: owntracks/<user>/<device>
TOPIC_ROOT = "owntracks"
TOPIC_SEPARATOR = "/"
TOPIC_SEGMENTS = 3

# Ключи проекций последних локаций
LATEST_KEY_PREFIX = "last"
LATEST_KEY_SEPARATOR = ":"
LATEST_GLOBAL_SUFFIX = "all"

# Ключи журналов: rec/<user>/<device>/<YYYY-MM>.rec
RECORD_KEY_SEPARATOR = "/"
RECORD_LINE_SEPARATOR = " * "
