class StartupError(RuntimeError):
    """The service cannot run with its current configuration."""


class ParseError(ValueError):
    pass


class ColumnCountError(ParseError):
    def __init__(self, count: int, expected: int, columns: list[str]) -> None:
        self.count = count
        self.expected = expected
        self.columns = columns
        super().__init__(f"{count} columns received instead of {expected}")
