from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'giftcards'

router = SimpleRouter()
router.register(r'admin/gift-cards', views.GiftCardViewSet, basename='gift-card')

urlpatterns = [
    # Router routes
    # GET    /api/admin/gift-cards/            - List gift cards
    # POST   /api/admin/gift-cards/            - Issue a gift card
    # GET    /api/admin/gift-cards/stats/      - Balance totals (admin)
    # GET    /api/admin/gift-cards/{id}/       - Card with transactions
    # PATCH  /api/admin/gift-cards/{id}/       - Activate or deactivate
    # GET    /api/admin/gift-cards/{id}/qr/    - Share link QR code

    path('gift-cards/share/<str:share_token>/', views.shared_gift_card, name='share'),
    path('scan/gift-card/', views.scan_gift_card, name='scan'),
    path('purchase/gift-card/', views.charge_gift_card, name='charge'),

    path('', include(router.urls)),
]
