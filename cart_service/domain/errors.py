# cart_service/domain/errors.py


class CartError(Exception):
    """Base class for cart use case failures."""


class InvalidRequest(CartError):
    """Caller supplied a missing or malformed field. Not retried."""


class NotFound(CartError):
    """Referenced cart line or product does not exist. Not retried."""


class StoreError(CartError):
    """A collaborator (document store, lock store, catalog) call failed."""
