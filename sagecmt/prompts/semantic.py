TEMPLATES = {
    "english": """Write a commit message in the Semantic format:
type: message

Types:
- feat: new feature
- fix: bug fix
- docs: documentation changes
- style: code style changes
- refactor: code refactoring
- test: test updates
- chore: build process or tooling changes

Example:
feat: add avatar upload for users""",
    "russian": """Составьте сообщение коммита в формате Semantic:
тип: сообщение

Типы:
- feat: новая функциональность
- fix: исправление ошибки
- docs: документация
- style: стиль кода
- refactor: рефакторинг
- test: тесты
- chore: сборка или вспомогательные инструменты

Пример:
feat: добавить загрузку аватара""",
}
