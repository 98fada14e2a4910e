"""Ошибки доменных операций аукциона"""
from decimal import Decimal


class AuctionError(Exception):
    """Базовая ошибка. code - стабильный идентификатор для клиента"""
    code = "auction_error"
    status_code = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"success": False, "code": self.code, "message": self.message, **self.extra}


class NotFound(AuctionError):
    code = "not_found"
    status_code = 404


class InvalidState(AuctionError):
    """Операция недопустима в текущем состоянии лота"""
    code = "invalid_state"
    status_code = 409


class AuctionNotActive(InvalidState):
    """Лот не одобрен или аукцион уже завершен"""
    code = "auction_not_active"


class Forbidden(AuctionError):
    code = "forbidden"
    status_code = 403


class SelfBid(Forbidden):
    """Владелец пытается сделать ставку на свой лот"""
    code = "self_bid"


class ValidationError(AuctionError):
    """Некорректные входные данные"""
    code = "validation_error"
    status_code = 400


class Conflict(AuctionError):
    code = "conflict"
    status_code = 409


class BidTooLow(Conflict):
    """Ставка не выше текущей цены"""
    code = "bid_too_low"

    def __init__(self, amount: Decimal, current_price: Decimal):
        super().__init__(
            f"Ставка {amount} должна быть выше текущей цены {current_price}",
            current_price=str(current_price),
        )
        self.amount = amount
        self.current_price = current_price


class Unavailable(AuctionError):
    """Хранилище временно недоступно, запрос можно повторить"""
    code = "unavailable"
    status_code = 503
