from django.urls import path
from . import views

app_name = 'loyalty'

urlpatterns = [
    # Counter
    path('purchase/', views.record_purchase_view, name='purchase'),
    path('redeem/', views.redeem_reward_view, name='redeem'),
    path('scan/', views.scan_customer_view, name='scan'),

    # Customer
    path('loyalty/me/', views.my_card, name='my-card'),

    # Admin dashboard
    path('admin/customers/', views.customers, name='customers'),
    path('admin/stats/', views.stats, name='stats'),
    path('admin/transactions/', views.transactions, name='transactions'),
]
