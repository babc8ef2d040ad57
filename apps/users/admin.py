from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import CustomUser

class CustomUserAdmin(UserAdmin):
    model = CustomUser
    list_display = ('email', 'get_full_name', 'role', 'university', 'is_active')
    list_filter = ('role', 'university', 'is_active')
    ordering = ('email',)
    # search_fields must reference model fields (not properties/methods)
    search_fields = ('email', 'username', 'university')

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('username', 'role', 'phone')}),
        ('Campus', {'fields': ('university', 'address')}),
        ('Notifications', {'fields': ('fcm_token',)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'role', 'university', 'is_active')}
        ),
    )

admin.site.register(CustomUser, CustomUserAdmin)
