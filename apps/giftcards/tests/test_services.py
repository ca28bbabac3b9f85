import pytest
from decimal import Decimal
from unittest.mock import patch
from apps.giftcards.exceptions import (
    GiftCardInactiveError,
    GiftCardNotFoundError,
    InsufficientBalanceError,
    NoValidFieldsError,
)
from apps.giftcards.models import GiftCardTransaction
from apps.giftcards.services import GiftCardService, GiftCardQRGenerator, build_share_link, to_money


# =============================================================================
# Helpers
# =============================================================================

class TestMoney:
    def test_rounds_half_up_to_centavos(self):
        assert to_money('10.005') == Decimal('10.01')
        assert to_money(Decimal('7')) == Decimal('7.00')

    def test_share_link_uses_app_url(self):
        assert build_share_link('abc') == 'https://coffee.example.com/gift-card/abc'


# =============================================================================
# Issue and lookup
# =============================================================================

@pytest.mark.django_db
class TestIssue:
    def test_issue_sets_balances_and_tokens(self, employee):
        card = GiftCardService.issue(
            recipient_name='  Lucia  ',
            initial_balance=Decimal('250'),
            created_by=employee,
        )

        assert card.recipient_name == 'Lucia'
        assert card.balance_mxn == Decimal('250.00')
        assert card.initial_balance_mxn == Decimal('250.00')
        assert len(card.share_token) == 64
        assert card.is_active is True
        assert card.claimed_at is None

    def test_issue_records_initial_transaction(self, gift_card):
        entry = GiftCardTransaction.objects.get(gift_card=gift_card)
        assert entry.description == 'Initial balance'
        assert entry.amount_mxn == Decimal('500.00')
        assert entry.balance_after_mxn == Decimal('500.00')

    def test_serials_and_share_tokens_are_unique(self, employee):
        first = GiftCardService.issue(recipient_name='A', initial_balance=Decimal('10'))
        second = GiftCardService.issue(recipient_name='B', initial_balance=Decimal('10'))
        assert first.serial_number != second.serial_number
        assert first.share_token != second.share_token

    def test_scan_inactive_raises(self, inactive_gift_card):
        with pytest.raises(GiftCardInactiveError):
            GiftCardService.scan(inactive_gift_card.serial_number)

    def test_unknown_share_token_raises(self):
        with pytest.raises(GiftCardNotFoundError):
            GiftCardService.get_by_share_token('missing')

    def test_update_requires_boolean(self, gift_card):
        with pytest.raises(NoValidFieldsError):
            GiftCardService.update(gift_card.id)


# =============================================================================
# Charging
# =============================================================================

@pytest.mark.django_db
class TestCharge:
    def test_charge_deducts_and_claims(self, gift_card, employee):
        card, before = GiftCardService.charge(
            gift_card_id=gift_card.id,
            amount=Decimal('85.50'),
            employee=employee,
        )

        assert before == Decimal('500.00')
        assert card.balance_mxn == Decimal('414.50')
        assert card.claimed_at is not None

        entry = GiftCardTransaction.objects.filter(gift_card=gift_card).order_by('-created_at').first()
        assert entry.amount_mxn == Decimal('-85.50')
        assert entry.balance_after_mxn == Decimal('414.50')
        assert entry.description == 'Purchase: 85.50 MXN'
        assert entry.employee == employee

    def test_second_charge_keeps_first_claim_time(self, gift_card):
        card, _ = GiftCardService.charge(gift_card_id=gift_card.id, amount=Decimal('10'))
        claimed_at = card.claimed_at

        card, _ = GiftCardService.charge(gift_card_id=gift_card.id, amount=Decimal('10'))
        assert card.claimed_at == claimed_at

    def test_charge_whole_balance(self, gift_card):
        card, _ = GiftCardService.charge(gift_card_id=gift_card.id, amount=Decimal('500'))
        assert card.balance_mxn == Decimal('0.00')

    def test_insufficient_balance_reports_shortfall(self, gift_card):
        with pytest.raises(InsufficientBalanceError) as excinfo:
            GiftCardService.charge(gift_card_id=gift_card.id, amount=Decimal('650'))

        assert excinfo.value.current_balance == Decimal('500.00')
        assert excinfo.value.required_amount == Decimal('650.00')
        assert excinfo.value.shortfall == Decimal('150.00')
        gift_card.refresh_from_db()
        assert gift_card.balance_mxn == Decimal('500.00')

    def test_charge_inactive_card_raises(self, inactive_gift_card):
        with pytest.raises(GiftCardInactiveError):
            GiftCardService.charge(gift_card_id=inactive_gift_card.id, amount=Decimal('1'))

    def test_charge_pushes_pass_after_commit(self, gift_card, django_capture_on_commit_callbacks):
        with patch('apps.wallet.services.notifications.sync_gift_card_pass') as sync:
            with django_capture_on_commit_callbacks(execute=True):
                GiftCardService.charge(gift_card_id=gift_card.id, amount=Decimal('20'))

        sync.assert_called_once_with(gift_card.serial_number)


# =============================================================================
# Statistics and QR
# =============================================================================

@pytest.mark.django_db
class TestStatistics:
    def test_totals(self, gift_card, inactive_gift_card):
        GiftCardService.charge(gift_card_id=gift_card.id, amount=Decimal('100'))

        stats = GiftCardService.get_statistics()

        assert stats['totalGiftCards'] == 2
        assert stats['totalBalanceIssued'] == 600.0
        assert stats['totalBalanceRemaining'] == 500.0
        assert stats['totalBalanceUsed'] == 100.0
        assert stats['activeGiftCards'] == 1
        assert stats['claimedGiftCards'] == 1
        assert stats['averageGiftCardValue'] == 300.0
        assert stats['topGiftCards'][0]['recipient_name'] == 'Lucia Gomez'

    def test_empty(self):
        stats = GiftCardService.get_statistics()
        assert stats['totalGiftCards'] == 0
        assert stats['totalBalanceUsed'] == 0.0
        assert stats['topGiftCards'] == []


@pytest.mark.django_db
class TestQRGenerator:
    def test_generates_png(self, gift_card):
        png = GiftCardQRGenerator.generate_for_gift_card(gift_card)
        assert png.startswith(b'\x89PNG')
