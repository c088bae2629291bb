"""Exceptions raised outside the game engine.

The engine itself never raises for a bad host action; these cover input
that arrives from clients before it reaches the engine.
"""


class FeudException(Exception):
    """Base class for feud application errors."""
    pass


class GameNotFound(FeudException):
    def __init__(self, game_code):
        self.game_code = game_code
        super().__init__(f"Game {game_code} not found")


class InvalidInput(FeudException, ValueError):
    """Client input failed validation; ``errors`` lists every problem found."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class QuestionPackError(InvalidInput):
    pass


class SettingsError(InvalidInput):
    pass
