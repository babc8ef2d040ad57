from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CustomUserManager(BaseUserManager):
    """
    Custom user manager where email is the unique identifier
    for authentication instead of username.
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user with the given email and password.
        """
        if not email:
            raise ValueError(_('The Email field must be set'))

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser with the given email and password.
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', 'admin')

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))

        return self.create_user(email, password, **extra_fields)


class CustomUser(AbstractBaseUser, PermissionsMixin):
    """
    Univend account. Email is the login; role decides which side of
    the marketplace the user acts on (buying, selling or delivering).
    """

    ROLE_CHOICES = (
        ('buyer', 'Buyer'),
        ('vendor', 'Vendor'),
        ('rider', 'Rider'),
        ('admin', 'Admin'),
    )

    email = models.EmailField(
        _('email address'),
        unique=True,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
    )
    username = models.CharField(
        _('display name'),
        max_length=150,
        blank=True,
        help_text=_('Optional. 150 characters or fewer.')
    )
    role = models.CharField(
        _('role'),
        max_length=10,
        choices=ROLE_CHOICES,
        default='buyer',
        help_text=_('User role in the marketplace')
    )
    university = models.CharField(
        _('university'),
        max_length=200,
        blank=True,
        help_text=_('Institution the user belongs to; scopes rider visibility')
    )
    address = models.TextField(
        _('delivery address'),
        blank=True,
        help_text=_('Personal delivery address used at checkout')
    )
    phone = models.CharField(_('phone'), max_length=20, blank=True)
    fcm_token = models.CharField(
        _('push token'),
        max_length=255,
        blank=True,
        help_text=_('Device token for push notifications')
    )
    date_joined = models.DateTimeField(
        _('date joined'),
        default=timezone.now
    )
    is_staff = models.BooleanField(
        _('staff status'),
        default=False,
        help_text=_('Designates whether the user can log into the admin site.')
    )
    is_active = models.BooleanField(
        _('active'),
        default=True,
        help_text=_(
            'Designates whether this user should be treated as active. '
            'Unselect this instead of deleting accounts.'
        )
    )

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-date_joined']
        db_table = 'users_customuser'

    def __str__(self):
        return self.email

    def get_full_name(self):
        """
        Return the username or email as the full name.
        """
        return self.username if self.username else self.email

    def get_short_name(self):
        return self.username if self.username else self.email.split('@')[0]

    @property
    def display_name(self):
        return self.get_full_name()

    @property
    def is_buyer(self):
        return self.role == 'buyer'

    @property
    def is_vendor(self):
        return self.role == 'vendor'

    @property
    def is_rider(self):
        return self.role == 'rider'

    @property
    def is_admin_role(self):
        return self.role == 'admin'
