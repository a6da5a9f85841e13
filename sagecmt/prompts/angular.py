"""Angular commit convention prompt template."""

TEMPLATES = {
    "english": """Write a commit message in the Angular format:
<type>(<scope>): <short summary>

[optional body with bullet points]

Rules:
1. Subject line: type(scope): summary, at most 50 characters
2. Small changes need only the subject line
3. Larger changes list the key points in the body:
   - every line starts with "- "
   - keep lines under 50 characters

Types:
build: build system or dependencies
ci: CI configuration
docs: documentation
feat: new feature
fix: bug fix
perf: performance
refactor: code restructuring
test: tests

Examples:
feat(api): add payload validation

refactor(core): speed up database queries

- Cache repeated queries
- Add connection pooling
""",
    "russian": """Составьте сообщение коммита в формате Angular:
<тип>(<область>): <краткое описание>

[необязательное тело со списком изменений]

Правила:
1. Первая строка: тип(область): описание, не длиннее 50 символов
2. Для небольших изменений достаточно первой строки
3. Для крупных изменений перечислите главное в теле:
   - каждая строка начинается с "- "
   - строки не длиннее 50 символов

Типы:
build: сборка и зависимости
ci: настройка CI
docs: документация
feat: новая функция
fix: исправление
perf: производительность
refactor: изменение структуры кода
test: тесты

Пример:
feat(api): добавить проверку данных
""",
}
