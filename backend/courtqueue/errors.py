"""Ошибки движка сессии."""


class ValidationError(ValueError):
    """
    Некорректный ввод мутатора: неразбираемая строка пакета,
    уровень вне шкалы, число кортов вне диапазона.
    line — номер строки (с 1), если ошибка относится к строке ввода.
    """

    def __init__(self, message: str, line: int | None = None, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.field = field

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message


class InvariantViolation(RuntimeError):
    """Нарушена внутренняя согласованность состояния. Это баг, не ошибка ввода."""
