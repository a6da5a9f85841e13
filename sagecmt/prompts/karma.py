TEMPLATES = {
    "english": """Write a commit message in the Karma format:
<type>(<scope>): <message>

Types:
- feat: new feature
- fix: bug fix
- docs: documentation change
- style: formatting, missing semicolons and similar
- refactor: code refactoring
- test: adding tests
- chore: maintenance

Example:
chore(ci): update deployment script to Node 20""",
    "russian": """Составьте сообщение коммита в формате Karma:
<тип>(<область>): <сообщение>

Типы:
- feat: новая функциональность
- fix: исправление ошибки
- docs: документация
- style: форматирование
- refactor: рефакторинг
- test: добавление тестов
- chore: обслуживание

Пример:
chore(ci): обновить скрипт деплоя до Node 20""",
}
