"""Order domain exceptions.

Raised by the engines and the Service Layer before any write happens.
The API layer (Views) catches ``OrderError`` and translates each family
into an HTTP status via ``http_status``.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for every rejected order request."""

    http_status = 400


# -- NotFound ---------------------------------------------------------------


class OrderNotFound(OrderError):
    """The requested order does not exist."""

    http_status = 404


class OrderItemNotFound(OrderError):
    """The requested line item is not part of the order."""

    http_status = 404


class ProductNotFound(OrderError):
    """A product referenced by a new order item does not exist."""

    http_status = 404


# -- Forbidden --------------------------------------------------------------


class Forbidden(OrderError):
    """The acting principal's role or ownership does not allow the request."""

    http_status = 403


# -- InvalidArgument --------------------------------------------------------


class InvalidStatus(OrderError):
    """The requested status is not a valid value (or not settable by the actor)."""


# -- InvalidTransition ------------------------------------------------------


class InvalidTransition(OrderError):
    """The requested status would move an item backwards or out of a terminal state."""


# -- Conflict ---------------------------------------------------------------


class OrderConflict(OrderError):
    """The order's current state blocks the request.

    Also raised when optimistic concurrency gives up; the client may retry.
    """

    http_status = 409


class OrderFrozen(OrderConflict):
    """The whole order is cancelled; no further status writes are accepted."""


class ConcurrentModification(OrderConflict):
    """Another request persisted the order between our read and our write."""


# -- Terminal ---------------------------------------------------------------


class NoEligibleItems(OrderError):
    """Every targeted item is already cancelled."""


class AlreadyCancelled(OrderError):
    """The item (or order) targeted for cancellation is already cancelled."""
