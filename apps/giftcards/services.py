"""
Gift Card Services Module
=========================

Business logic for prepaid gift cards: issuing, charging sales against the
balance, lookups for the scan screen and the public share page, and the QR
code that carries the share link.

Classes:
    GiftCardService: Issue, look up, update and charge gift cards.
    GiftCardQRGenerator: Render the share link as a PNG QR code.

Example:
    Charging a sale at the counter::

        from apps.giftcards.services import GiftCardService
        from decimal import Decimal

        card, before = GiftCardService.charge(
            gift_card_id=card.id,
            amount=Decimal('85.50'),
            employee=request_employee,
        )
        print(f"{before} -> {card.balance_mxn} MXN")
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import partial
from io import BytesIO

from django.db import transaction
from django.db.models import Q, Sum, Count, Avg
from django.utils import timezone

from apps.wallet.services.base_url import get_base_url

from .exceptions import (
    GiftCardNotFoundError,
    GiftCardInactiveError,
    InsufficientBalanceError,
    NoValidFieldsError,
    QRGenerationError,
)
from .models import GiftCard, GiftCardTransaction

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
LIST_LIMIT = 100
TOP_GIFT_CARDS_LIMIT = 10


def to_money(value):
    """Round to whole centavos."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def build_share_link(share_token):
    return f"{get_base_url()}/gift-card/{share_token}"


def _schedule_pass_refresh(serial_number):
    from apps.wallet.services.notifications import sync_gift_card_pass

    transaction.on_commit(partial(sync_gift_card_pass, serial_number), robust=True)


class GiftCardService:
    """
    Service for gift card lifecycle operations.

    Balances only change inside ``charge``, under a row lock, and every
    change leaves a ``GiftCardTransaction`` behind.
    """

    @staticmethod
    @transaction.atomic
    def issue(*, recipient_name, initial_balance, created_by=None):
        """
        Create an active gift card with its opening ledger row.

        Args:
            recipient_name (str): Name printed on the pass.
            initial_balance (Decimal): Opening balance in MXN (validated >= 10 upstream).
            created_by (Employee, optional): Employee issuing the card.

        Returns:
            GiftCard: The new card with a fresh serial number and share token.
        """
        amount = to_money(initial_balance)
        gift_card = GiftCard.objects.create(
            recipient_name=recipient_name.strip(),
            balance_mxn=amount,
            initial_balance_mxn=amount,
            created_by=created_by,
        )
        GiftCardTransaction.objects.create(
            gift_card=gift_card,
            employee=created_by,
            amount_mxn=amount,
            balance_after_mxn=amount,
            description='Initial balance',
        )
        logger.info("Issued gift card %s for %s MXN", gift_card.serial_number, amount)
        return gift_card

    @staticmethod
    def list(*, status='all', search=None):
        """Newest cards first, at most ``LIST_LIMIT``."""
        queryset = GiftCard.objects.all()

        if status == 'active':
            queryset = queryset.filter(is_active=True)
        elif status == 'inactive':
            queryset = queryset.filter(is_active=False)

        if search:
            queryset = queryset.filter(
                Q(recipient_name__icontains=search) | Q(serial_number__icontains=search)
            )

        return queryset.order_by('-created_at')[:LIST_LIMIT]

    @staticmethod
    def get(gift_card_id):
        try:
            return (
                GiftCard.objects
                .select_related('recipient_user', 'created_by')
                .get(id=gift_card_id)
            )
        except GiftCard.DoesNotExist:
            raise GiftCardNotFoundError()

    @staticmethod
    def update(gift_card_id, *, is_active=None):
        """
        Toggle a card's active flag, the only field editable after issue.

        Raises:
            NoValidFieldsError: ``is_active`` was not a boolean.
            GiftCardNotFoundError: Unknown card.
        """
        if not isinstance(is_active, bool):
            raise NoValidFieldsError()

        gift_card = GiftCardService.get(gift_card_id)
        gift_card.is_active = is_active
        gift_card.save(update_fields=['is_active', 'updated_at'])
        _schedule_pass_refresh(gift_card.serial_number)
        return gift_card

    @staticmethod
    def get_by_share_token(share_token):
        try:
            return GiftCard.objects.get(share_token=share_token)
        except GiftCard.DoesNotExist:
            raise GiftCardNotFoundError()

    @staticmethod
    def get_by_serial(serial_number):
        try:
            return GiftCard.objects.get(serial_number=serial_number)
        except GiftCard.DoesNotExist:
            raise GiftCardNotFoundError()

    @staticmethod
    def scan(serial_number):
        """
        Look up a card read from its QR code.

        Raises:
            GiftCardNotFoundError: Unknown serial.
            GiftCardInactiveError: Card has been deactivated.
        """
        gift_card = GiftCardService.get_by_serial(serial_number)
        if not gift_card.is_active:
            raise GiftCardInactiveError()
        return gift_card

    @staticmethod
    @transaction.atomic
    def charge(*, gift_card_id, amount, employee=None):
        """
        Pay for a sale with the card balance.

        The first charge marks the card as claimed. The wallet pass is pushed
        after commit.

        Args:
            gift_card_id (UUID): Card to charge.
            amount (Decimal): Sale total in MXN, greater than zero.
            employee (Employee, optional): Employee ringing up the sale.

        Returns:
            tuple: (updated GiftCard, balance before the charge)

        Raises:
            GiftCardNotFoundError: Unknown card.
            GiftCardInactiveError: Card has been deactivated.
            InsufficientBalanceError: ``amount`` exceeds the balance.
        """
        amount = to_money(amount)
        try:
            gift_card = GiftCard.objects.select_for_update().get(id=gift_card_id)
        except GiftCard.DoesNotExist:
            raise GiftCardNotFoundError()

        if not gift_card.is_active:
            raise GiftCardInactiveError()

        balance_before = gift_card.balance_mxn
        if balance_before < amount:
            raise InsufficientBalanceError(balance_before, amount)

        gift_card.balance_mxn = balance_before - amount
        update_fields = ['balance_mxn', 'updated_at']
        if gift_card.claimed_at is None:
            gift_card.claimed_at = timezone.now()
            update_fields.append('claimed_at')
        gift_card.save(update_fields=update_fields)

        GiftCardTransaction.objects.create(
            gift_card=gift_card,
            employee=employee,
            amount_mxn=-amount,
            balance_after_mxn=gift_card.balance_mxn,
            description=f"Purchase: {amount:.2f} MXN",
        )

        _schedule_pass_refresh(gift_card.serial_number)

        logger.info(
            "Charged %s MXN to gift card %s, balance %s",
            amount, gift_card.serial_number, gift_card.balance_mxn,
        )
        return gift_card, balance_before

    @staticmethod
    def get_statistics():
        """Issued, remaining and used totals plus the largest balances."""
        totals = GiftCard.objects.aggregate(
            count=Count('id'),
            issued=Sum('initial_balance_mxn'),
            remaining=Sum('balance_mxn'),
            average=Avg('initial_balance_mxn'),
        )
        issued = totals['issued'] or Decimal('0.00')
        remaining = totals['remaining'] or Decimal('0.00')

        top = (
            GiftCard.objects
            .order_by('-balance_mxn')
            .values('id', 'serial_number', 'recipient_name', 'balance_mxn', 'initial_balance_mxn')
            [:TOP_GIFT_CARDS_LIMIT]
        )

        return {
            'totalGiftCards': totals['count'],
            'totalBalanceIssued': float(issued),
            'totalBalanceRemaining': float(remaining),
            'totalBalanceUsed': float(issued - remaining),
            'activeGiftCards': GiftCard.objects.filter(is_active=True).count(),
            'claimedGiftCards': GiftCard.objects.filter(claimed_at__isnull=False).count(),
            'averageGiftCardValue': float(to_money(totals['average'] or 0)),
            'topGiftCards': [
                {
                    'id': str(row['id']),
                    'serial_number': str(row['serial_number']),
                    'recipient_name': row['recipient_name'],
                    'balance_mxn': float(row['balance_mxn']),
                    'initial_balance_mxn': float(row['initial_balance_mxn']),
                }
                for row in top
            ],
        }


class GiftCardQRGenerator:
    """
    Render a gift card's share link as a QR code.

    The employee screen shows it so the buyer can scan the link and add the
    card to their wallet.
    """

    @staticmethod
    def generate_png(data):
        """
        Encode ``data`` into a PNG.

        Returns:
            bytes: PNG image data.

        Raises:
            QRGenerationError: If the image cannot be produced.
        """
        import qrcode

        try:
            qr = qrcode.QRCode(
                version=1,
                error_correction=qrcode.constants.ERROR_CORRECT_M,
                box_size=10,
                border=4,
            )
            qr.add_data(data)
            qr.make(fit=True)
            image = qr.make_image(fill_color="black", back_color="white")

            buffer = BytesIO()
            image.save(buffer, format='PNG')
        except (ValueError, OSError) as e:
            raise QRGenerationError(f"QR code generation failed: {e}") from e

        return buffer.getvalue()

    @staticmethod
    def generate_for_gift_card(gift_card):
        return GiftCardQRGenerator.generate_png(build_share_link(gift_card.share_token))
