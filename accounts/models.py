from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    """
    Custom manager to easily create the different school roles.
    """

    def create_user(self, email, password=None, **extra_fields):
        """Base method for creating a generic user."""
        if not email:
            raise ValueError(_('The Email must be set'))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create a Superuser (Platform Owner)."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))

        return self.create_user(email, password, **extra_fields)

    # --- ROLE SPECIFIC HELPERS ---

    def create_school_admin(self, email, password=None, **extra_fields):
        """Create a School Administrator."""
        extra_fields.setdefault('is_school_admin', True)
        extra_fields.setdefault('is_staff', False)
        return self.create_user(email, password, **extra_fields)

    def create_teacher(self, email, password=None, **extra_fields):
        """Create a Teacher (form or subject teacher, decided by assignments)."""
        extra_fields.setdefault('is_teacher', True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    username = None
    email = models.EmailField(_('email address'), unique=True)

    # Roles / Flags
    is_school_admin = models.BooleanField(default=False)
    is_teacher = models.BooleanField(default=False)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    def __str__(self):
        return self.email

    @property
    def is_admin(self):
        return self.is_superuser or self.is_school_admin

    @property
    def is_form_teacher(self):
        """A teacher becomes a form teacher once a class names them."""
        teacher = getattr(self, 'teacher_profile', None)
        if not self.is_teacher or teacher is None:
            return False
        return teacher.form_classes.filter(is_active=True).exists()

    @property
    def role_label(self):
        """Helper to get a string representation of the user's role"""
        if self.is_admin:
            return "Admin"
        if self.is_form_teacher:
            return "Form Teacher"
        if self.is_teacher:
            return "Subject Teacher"
        return "User"
