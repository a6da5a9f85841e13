"""Conventional Commits prompt template."""

TEMPLATES = {
    "english": """Write a commit message in the Conventional Commits format:
<type>[optional scope]: <description>

[body listing the changes as bullet points]

Rules:
1. Subject line: type(scope): description, at most 50 characters
- type is one of: feat|fix|docs|style|refactor|perf|test|build|ci|chore
- scope is optional and names the area that changed
- description is short and specific

2. Body:
- one change per line
- every line starts with "- "
- keep lines under 50 characters
- describe what changed
- use the imperative mood

Type reference:
feat: new feature or notable enhancement
fix: bug fix
docs: documentation only
style: formatting, no code change
refactor: code change that keeps behaviour
perf: performance improvement
test: new or updated tests
build: build system or dependencies
ci: CI/CD configuration
chore: general maintenance

Examples:
feat(auth): add Google OAuth login

- Implement OAuth2 authentication flow
- Fetch user profile data
- Store tokens securely

fix(api): resolve stale cache entries

- Fix cache invalidation logic
- Add cache timeout checks
""",
    "russian": """Составьте сообщение коммита в формате Conventional Commits:
<тип>[область]: <описание>

[тело со списком изменений]

Правила:
1. Первая строка: тип(область): описание, не длиннее 50 символов
- тип: feat|fix|docs|style|refactor|perf|test|build|ci|chore
- область необязательна и указывает затронутую часть проекта
- описание короткое и конкретное

2. Тело:
- одно изменение на строку
- каждая строка начинается с "- "
- строки не длиннее 50 символов
- описывайте, что изменилось
- используйте повелительное наклонение

Типы:
feat: новая функциональность
fix: исправление ошибки
docs: документация
style: форматирование кода
refactor: рефакторинг без изменения поведения
perf: производительность
test: тесты
build: сборка или зависимости
ci: настройка CI/CD
chore: обслуживание

Пример:
feat(auth): добавить вход через Google OAuth

- Реализовать поток OAuth2
- Получать данные профиля
- Безопасно хранить токены
""",
}
