from django.urls import path

from .views import provider_configured

urlpatterns = [
    path('configured/', provider_configured, name='payments_configured'),
]
