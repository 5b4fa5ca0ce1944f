"""URL configuration for the wallet_service project."""
from django.contrib import admin
from django.urls import include, path

from wallets import views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', views.health_check, name='health_check'),
    path('api/v1/', include('wallets.urls')),
]
