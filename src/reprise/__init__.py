"""reprise: spaced-repetition scheduling for flashcards kept in Markdown files."""

__version__ = "0.1.0"
