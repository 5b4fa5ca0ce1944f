"""URL configuration for wallets app."""
from django.urls import path
from . import views

urlpatterns = [
    path('transactions/topup/', views.topup, name='topup'),
    path('transactions/bonus/', views.bonus, name='bonus'),
    path('transactions/spend/', views.spend, name='spend'),
    path('transactions/<str:transaction_id>/', views.get_transaction, name='get_transaction'),
    path('wallets/<str:owner>/balances/', views.get_balances, name='get_balances'),
    path('wallets/<str:owner>/transactions/', views.get_transactions, name='get_transactions'),
]
