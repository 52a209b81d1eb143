"""
Рекордер локаций OwnTracks.

HTTP mode: приём сообщений на POST / и чтение журнала и последних локаций
через /api/0/*. Все маршруты, кроме /health, закрыты HTTP Basic.
"""
