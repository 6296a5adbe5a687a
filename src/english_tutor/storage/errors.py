"""Storage exceptions."""


class ProgressSaveError(Exception):
    """Progress could not be read or written."""

    def __init__(self, message: str = "Could not save progress"):
        super().__init__(message)


class DuplicateUnlockError(ProgressSaveError):
    """The achievement is already unlocked for this user."""

    def __init__(self, user_id: str, achievement_type: str):
        super().__init__(f"Achievement {achievement_type} already unlocked for {user_id}")
        self.user_id = user_id
        self.achievement_type = achievement_type


class VocabularyNotFoundError(LookupError):
    """The user has no saved vocabulary item for this word."""

    def __init__(self, user_id: str, word: str):
        super().__init__(f"Vocabulary word not found: {word}")
        self.user_id = user_id
        self.word = word
