"""
HTTP сервисы приложения.

Сервисы:
- recorder: приём локаций OwnTracks, журнал по устройствам, последние локации
"""

__all__: list[str] = []
