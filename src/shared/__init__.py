"""
Общий код между сервисами.

Модули:
- models: общие Pydantic-модели ответов API
"""

__all__: list[str] = []
