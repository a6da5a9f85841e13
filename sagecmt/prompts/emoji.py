"""Gitmoji-style prompt template."""

TEMPLATES = {
    "english": """Write a commit message in the Emoji format:
<emoji> commit message

Common emojis:
✨ :sparkles: - new feature
🐛 :bug: - bug fix
📚 :books: - documentation
💄 :lipstick: - UI or style changes
♻️ :recycle: - refactoring
✅ :white_check_mark: - tests
🔧 :wrench: - configuration
⚡️ :zap: - performance
🔒 :lock: - security

Examples:
✨ add real-time collaboration
🐛 fix expired token handling""",
    "russian": """Составьте сообщение коммита в формате Emoji:
<эмодзи> сообщение коммита

Часто используемые эмодзи:
✨ :sparkles: - новая функциональность
🐛 :bug: - исправление ошибки
📚 :books: - документация
💄 :lipstick: - интерфейс и стили
♻️ :recycle: - рефакторинг
✅ :white_check_mark: - тесты
🔧 :wrench: - конфигурация
⚡️ :zap: - производительность
🔒 :lock: - безопасность

Пример:
✨ добавить совместное редактирование""",
}
