"""
Main URL configuration for Univend project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('profile/', include(('apps.users.urls', 'users'), namespace='users')),
    path('', include(('apps.marketplace.urls', 'marketplace'), namespace='marketplace')),
]
