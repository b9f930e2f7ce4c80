class NotFoundError(Exception):
    """A referenced user, course, training, card or payment does not exist."""


class DuplicateEmailError(Exception):
    pass


class StoreError(Exception):
    """The database rejected or failed a query."""


class GatewayError(Exception):
    """A call to the payment processor failed."""


class NotificationError(Exception):
    pass
