from __future__ import annotations


class WikiError(Exception):
    code = "wiki_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PageNotFound(WikiError):
    code = "page_not_found"


class HomePageProtected(WikiError):
    code = "home_page_protected"


class InvalidPageName(WikiError):
    code = "invalid_page_name"


class DuplicatePageName(WikiError):
    code = "duplicate_page_name"


class UserNotFound(WikiError):
    code = "user_not_found"


class WrongPassword(WikiError):
    code = "wrong_password"


class UsernameTaken(WikiError):
    code = "username_taken"


class StorageError(WikiError):
    """Database or blob I/O failure; the original exception is chained."""

    code = "storage_error"
