from django.urls import path
from . import views

app_name = 'analytics'

urlpatterns = [
    # Activity reports
    path('transactions/', views.transactions, name='transactions'),
    path('customer-growth/', views.customer_growth, name='customer-growth'),
    path('redemptions/', views.redemptions, name='redemptions'),
    path('employee-performance/', views.employee_performance, name='employee-performance'),
    path('gift-card-transactions/', views.gift_card_transactions, name='gift-card-transactions'),

    # Customer insights
    path('customer-segments/', views.customer_segments, name='customer-segments'),
    path('churn-risk/', views.churn_risk, name='churn-risk'),
    path('customer-lifetime-value/', views.customer_lifetime_value, name='customer-lifetime-value'),
    path('next-purchase/', views.next_purchase, name='next-purchase'),
    path('forecast/', views.forecast, name='forecast'),
]
