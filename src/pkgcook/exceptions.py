class CookError(Exception):
    pass


class CookIOError(CookError):
    def __init__(self, action: str, error: BaseException) -> None:
        super().__init__(f"{action}: {error}")
        self.action = action
        self.error = error


class ScriptingError(CookError):
    pass


class MissingVariableError(CookError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Recipe is missing required variable '{name}'")
        self.name = name


class NonZeroExitError(CookError):
    def __init__(self, name: str, code: int, detail: str = "") -> None:
        message = f"'{name}' exited with code {code}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
        self.name = name
        self.code = code
        self.detail = detail


class SigningError(CookError):
    pass
