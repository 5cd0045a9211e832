# stockbot/errors.py


class StockbotError(Exception):
    pass


class ValidationError(StockbotError):
    """
    User-correctable input problem. Carries the list of messages to show inline.
    """

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class StoreError(StockbotError):
    pass


class SessionExpiredError(StockbotError):
    pass


class ConfigMissingError(StockbotError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Required configuration key is missing: {key}")
