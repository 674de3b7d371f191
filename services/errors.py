"""Ошибки бизнес-логики торгов

Ожидаемые отказы (торги закрыты, пользователь не одобрен, неверный код)
выбрасываются как именованные исключения. Ошибки инфраструктуры
(недоступна БД и т.п.) пробрасываются без изменений.
"""


class BiddingError(ValueError):
    """Базовая ошибка торгов"""
    default_message = "Операция недоступна"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


class InvalidAmount(BiddingError):
    default_message = "Сумма ставки должна быть больше нуля"


class NotApproved(BiddingError):
    default_message = "Ваш аккаунт ожидает одобрения администратора"


class BiddingClosed(BiddingError):
    default_message = "Торги по этой машине закрыты"


class NotFound(BiddingError):
    default_message = "Запись не найдена"


class AlreadyExists(BiddingError):
    default_message = "Запись уже существует"


class AlreadyClosed(BiddingError):
    default_message = "Лот уже закрыт"


class InvalidOrExpiredOtp(BiddingError):
    default_message = "Неверный или просроченный код"


class Unauthorized(BiddingError):
    default_message = "Недостаточно прав"


class InvalidStatusTransition(BiddingError):
    default_message = "Недопустимая смена статуса"


class WindowExpired(InvalidStatusTransition):
    default_message = "Окно торгов уже закончилось, укажите новое"
