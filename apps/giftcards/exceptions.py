"""
Domain exceptions for the gift cards app.

Errors a view can render as-is are APIException subclasses; the rest carry
extra data the view adds to the response.
"""
from decimal import Decimal

from rest_framework.exceptions import APIException


class GiftCardServiceError(Exception):
    """Base exception for gift card service errors."""
    pass


class InsufficientBalanceError(GiftCardServiceError):
    """Raised when a charge exceeds the card balance."""

    def __init__(self, current_balance: Decimal, required_amount: Decimal):
        self.current_balance = current_balance
        self.required_amount = required_amount
        self.shortfall = required_amount - current_balance
        super().__init__('Insufficient balance')


class QRGenerationError(GiftCardServiceError):
    """QR code image generation failed."""
    pass


class GiftCardNotFoundError(APIException):
    """Gift card not found."""
    status_code = 404
    default_detail = 'Gift card not found'
    default_code = 'gift_card_not_found'


class GiftCardInactiveError(APIException):
    """Gift card has been deactivated."""
    status_code = 400
    default_detail = 'Gift card is inactive'
    default_code = 'gift_card_inactive'


class NoValidFieldsError(APIException):
    """Update request carried nothing that may be changed."""
    status_code = 400
    default_detail = 'No valid fields to update'
    default_code = 'no_valid_fields'
