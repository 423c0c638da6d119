"""Database models for users, customer profiles and admin credentials."""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user model.

    Extends Django's :class:`~django.contrib.auth.models.AbstractUser` with
    ``user_type`` separating shoppers from back-office administrators.
    """

    CUSTOMER = 'customer'
    ADMIN = 'admin'
    USER_TYPE_CHOICES = (
        (CUSTOMER, 'Customer'),
        (ADMIN, 'Admin'),
    )
    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, default=CUSTOMER)

    def __str__(self):
        return self.username


class CustomerProfile(models.Model):
    """Delivery contact details registered by a customer.

    Printed on kitchen order tickets; never copied into orders.
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='customer_profile')
    name = models.CharField(max_length=150)
    phone_number = models.CharField(max_length=20)
    pickup_address = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.user.username})"


class AdminCredentials(models.Model):
    """Shared back-office username/password.

    At most one row, with primary key ``SINGLETON_PK``, exists once the store
    has been set up. Presenting these credentials grants the caller the admin
    role.
    """

    SINGLETON_PK = 1

    username = models.CharField(max_length=150)
    password = models.CharField(max_length=128)
    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    class Meta:
        verbose_name = "Admin Credentials"
        verbose_name_plural = "Admin Credentials"
        constraints = [
            models.CheckConstraint(condition=models.Q(pk=1), name='admin_credentials_singleton'),
        ]

    def __str__(self):
        return f"Admin credentials ({self.username})"
